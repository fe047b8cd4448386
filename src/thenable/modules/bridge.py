import asyncio
from asyncio import AbstractEventLoop
from collections.abc import Callable
from typing import Any, Optional

from .chainable import Chainable
from .errors import reason_to_exception
from .future_state import Fulfilled, Rejected, SettledState, transfer


def absorb_asyncio_future[T](future: asyncio.Future[T], /) -> SettledState[T]:
  """
  Capture the outcome of a completed asyncio future as a settled state.

  A cancelled future is represented as a rejection with an
  `asyncio.CancelledError` instance.
  """

  assert future.done()

  if future.cancelled():
    return Rejected(asyncio.CancelledError())

  if (exception := future.exception()) is not None:
    return Rejected(exception)

  return Fulfilled(future.result())


def transfer_from_asyncio[T](source: asyncio.Future[T], fulfill: Callable[[T], object], reject: Callable[[Any], object], /):
  """
  Forward the eventual outcome of an asyncio future to a pair of settlement
  functions.
  """

  source.add_done_callback(lambda future: transfer(absorb_asyncio_future(future), fulfill, reject))


def to_asyncio_future[T](chainable: Chainable[T], /, *, loop: Optional[AbstractEventLoop] = None) -> asyncio.Future[T]:
  """
  Create an asyncio future mirroring the outcome of a chainable.

  Parameters
  ----------
  chainable
    The chainable to observe.
  loop
    The loop the asyncio future belongs to. Defaults to the running loop.

  Returns
  -------
  asyncio.Future[T]
    A future which receives the fulfilled value, or the rejection reason
    converted with `reason_to_exception()`. A rejection with an
    `asyncio.CancelledError` cancels the future instead. The outcome is dropped
    if the future is already done, for instance when its awaiter was cancelled.
  """

  effective_loop = loop if loop is not None else asyncio.get_running_loop()
  future = effective_loop.create_future()

  def set_result(value: T):
    if not future.done():
      future.set_result(value)

  def set_exception(reason: Any):
    if future.done():
      return

    exception = reason_to_exception(reason)

    if isinstance(exception, asyncio.CancelledError):
      future.cancel()
    else:
      future.set_exception(exception)

  chainable.then(set_result, set_exception)
  return future


__all__ = [
  'absorb_asyncio_future',
  'to_asyncio_future',
  'transfer_from_asyncio',
]

import asyncio
import functools
import logging
import threading
from collections.abc import Awaitable, Callable, Iterator
from typing import Any, Optional

from .bridge import to_asyncio_future, transfer_from_asyncio
from .chainable import Chainable, is_chainable
from .future_state import Fulfilled, FutureState, Pending, Rejected, absorb_call, transfer
from .scheduler import Scheduler, get_scheduler


logger = logging.getLogger(__name__)

type Listener = Callable[[Any], object]
type Fulfill[T] = Callable[[T | Chainable[T]], None]
type Reject = Callable[..., None]
type Initializer[T] = Callable[[Fulfill[T], Reject], object]


class _ListenerDispatch(threading.local):
  """
  Runs the listeners of settled futures.

  Listeners run inline, inside the settling call. Once settlements are nested
  `max_depth` levels deep, the innermost level becomes a trampoline: listeners
  of futures settled from there are pushed on a stack and run when the current
  listener returns, in depth-first order. This keeps the call stack bounded for
  long adoption and `then` chains.
  """

  max_depth = 50

  def __init__(self):
    self.depth = 0
    self.stack: Optional[list[tuple[Iterator[Listener], Any]]] = None

  def run(self, listeners: list[Listener], argument: Any, /):
    if not listeners:
      return

    if self.stack is not None:
      self.stack.append((iter(listeners), argument))
      return

    if self.depth < self.max_depth:
      self.depth += 1

      try:
        for listener in listeners:
          listener(argument)
      finally:
        self.depth -= 1

      return

    stack = [(iter(listeners), argument)]
    self.stack = stack

    try:
      while stack:
        remaining, current_argument = stack[-1]
        listener = next(remaining, None)

        if listener is None:
          stack.pop()
        else:
          listener(current_argument)
    finally:
      self.stack = None


_dispatch = _ListenerDispatch()


class Future[T]:
  """
  A value that becomes available later, observed by attaching continuations.

  The future is created from an initializer, which is called immediately with
  two settlement functions, `fulfill(value)` and `reject(reason)`. Only the
  first effective call to either of them settles the future; later calls are
  ignored. A chainable value or reason (any object with a callable `then`
  method) is adopted: the future settles once that object settles instead.

  Continuations are attached with `then()`, `catch()` and `finally_()`, each of
  which returns a new future. Continuations attached to a pending future run as
  soon as it settles, in registration order. Continuations attached to a
  settled future are always deferred to the scheduler.

  Parameters
  ----------
  initializer
    A function called synchronously with the settlement functions. If it raises
    an exception, the future is rejected with it.
  scheduler
    The scheduler used to defer continuations. It is inherited by derived
    futures. Defaults to `get_scheduler()`.
  """

  def __init__(self, initializer: Initializer[T], /, *, scheduler: Optional[Scheduler] = None):
    if not callable(initializer):
      raise TypeError(f'Initializer must be callable, got {initializer!r}')

    self._fulfillment_listeners: list[Listener] = []
    self._rejection_listeners: list[Listener] = []
    self._scheduler = scheduler if scheduler is not None else get_scheduler()
    self._state: FutureState[T] = Pending()

    def fulfill(value: Any = None, /):
      self._resolve(value)

    def reject(reason: Any = None, /):
      self._reject(reason)

    try:
      initializer(fulfill, reject)
    except Exception as e:
      reject(e)

  def __await__(self):
    return to_asyncio_future(self).__await__()

  def __repr__(self):
    match self._state:
      case Pending():
        description = 'pending'
      case Fulfilled(value):
        description = f'fulfilled value={value!r}'
      case Rejected(reason):
        description = f'rejected reason={reason!r}'

    return f'<{self.__class__.__name__} {description}>'

  @property
  def scheduler(self):
    return self._scheduler

  @property
  def state(self):
    """
    The current state of the future, one of `Pending`, `Fulfilled` and
    `Rejected`.
    """

    return self._state

  def done(self):
    return not isinstance(self._state, Pending)

  def then[S](
    self,
    on_fulfilled: Optional[Callable[[T], S | Chainable[S]]] = None,
    on_rejected: Optional[Callable[[Any], S | Chainable[S]]] = None,
    /,
  ) -> 'Future[S]':
    """
    Attach continuations to the future.

    Parameters
    ----------
    on_fulfilled
      Called with the value if the future is fulfilled. If omitted, the value is
      forwarded unchanged.
    on_rejected
      Called with the reason if the future is rejected. If omitted, the reason
      is forwarded unchanged.

    Returns
    -------
    Future[S]
      A future fulfilled with the return value of the handler that ran, or
      rejected with the exception it raised.
    """

    _check_handler(on_fulfilled, 'on_fulfilled')
    _check_handler(on_rejected, 'on_rejected')

    return self._derive(lambda fulfill, reject: (
      _handle(on_fulfilled, fulfill, reject) if on_fulfilled is not None else fulfill,
      _handle(on_rejected, fulfill, reject) if on_rejected is not None else reject,
    ))

  def catch[S](self, on_rejected: Optional[Callable[[Any], S | Chainable[S]]] = None, /) -> 'Future[T | S]':
    """
    Attach a continuation run if the future is rejected.

    The value of a fulfilled future is forwarded to the returned future without
    going through any handler.
    """

    _check_handler(on_rejected, 'on_rejected')

    return self._derive(lambda fulfill, reject: (
      fulfill,
      _handle(on_rejected, fulfill, reject) if on_rejected is not None else reject,
    ))

  def finally_(self, on_finally: Optional[Callable[[], object]] = None, /) -> 'Future[T]':
    """
    Attach a continuation run whatever the outcome of the future.

    The callback takes no argument and its return value is ignored. The returned
    future settles with the original outcome, unless the callback raises, in
    which case it is rejected with the raised exception.
    """

    _check_handler(on_finally, 'on_finally')

    return self._derive(lambda fulfill, reject: (
      _finalize(on_finally, fulfill, reject),
      _finalize(on_finally, reject, reject),
    ))

  def _derive(self, create_listeners: Callable[[Fulfill[Any], Reject], tuple[Listener, Listener]], /) -> 'Future[Any]':
    settlers = list[Callable[..., None]]()
    derived = Future(lambda fulfill, reject: settlers.extend((fulfill, reject)), scheduler=self._scheduler)

    fulfill, reject = settlers
    self._subscribe(*create_listeners(fulfill, reject))

    return derived

  def _resolve(self, value: Any, /):
    match absorb_call(is_chainable, value):
      case Fulfilled(True):
        self._adopt(value, self._resolve, self._reject)
      case Fulfilled(False):
        self._settle(Fulfilled(value))
      case Rejected(error):
        self._settle(Rejected(error))

  def _reject(self, reason: Any, /):
    # The outcome of a chainable reason becomes the rejection reason, whether it
    # is fulfilled or rejected.
    match absorb_call(is_chainable, reason):
      case Fulfilled(True):
        self._adopt(reason, self._reject, self._reject)
      case Fulfilled(False):
        self._settle(Rejected(reason))
      case Rejected(error):
        self._settle(Rejected(error))

  def _adopt(self, chainable: Chainable[Any], on_fulfilled: Listener, on_rejected: Listener, /):
    if chainable is self:
      self._settle(Rejected(TypeError('Future cannot adopt itself')))
      return

    logger.debug('Adopting %r', chainable)

    try:
      if isinstance(chainable, Future):
        chainable._subscribe(on_fulfilled, on_rejected)
      else:
        chainable.then(on_fulfilled, on_rejected)
    except Exception as e:
      self._settle(Rejected(e))

  def _settle(self, state: Fulfilled[T] | Rejected, /):
    if not isinstance(self._state, Pending):
      logger.debug('Ignoring settlement of already settled %r', self)
      return

    fulfillment_listeners = self._fulfillment_listeners
    rejection_listeners = self._rejection_listeners

    self._fulfillment_listeners = []
    self._rejection_listeners = []
    self._state = state

    match state:
      case Fulfilled(value):
        _dispatch.run(fulfillment_listeners, value)
      case Rejected(reason):
        _dispatch.run(rejection_listeners, reason)

  def _subscribe(self, on_fulfilled: Listener, on_rejected: Listener, /):
    match self._state:
      case Pending():
        self._fulfillment_listeners.append(on_fulfilled)
        self._rejection_listeners.append(on_rejected)
      case Fulfilled(value):
        self._scheduler.schedule(functools.partial(on_fulfilled, value))
      case Rejected(reason):
        self._scheduler.schedule(functools.partial(on_rejected, reason))

  @classmethod
  def fulfilled[S](cls, value: S | Chainable[S] | None = None, /, *, scheduler: Optional[Scheduler] = None) -> 'Future[S]':
    """
    Create a future fulfilled with the given value, or adopting it if it is
    chainable.
    """

    return cls(lambda fulfill, reject: fulfill(value), scheduler=scheduler)

  @classmethod
  def rejected(cls, reason: Any = None, /, *, scheduler: Optional[Scheduler] = None) -> 'Future[Any]':
    """
    Create a future rejected with the given reason.
    """

    return cls(lambda fulfill, reject: reject(reason), scheduler=scheduler)

  @classmethod
  def from_awaitable[S](cls, awaitable: Awaitable[S], /, *, scheduler: Optional[Scheduler] = None) -> 'Future[S]':
    """
    Create a future settled with the outcome of an awaitable.

    The awaitable is wrapped in a task of the running event loop. A cancelled
    task rejects the future with an `asyncio.CancelledError` instance.

    Raises
    ------
    RuntimeError
      If there is no running event loop.
    """

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(awaitable, loop=loop)

    return cls(lambda fulfill, reject: transfer_from_asyncio(task, fulfill, reject), scheduler=scheduler)


def _check_handler(handler: Optional[Callable[..., Any]], name: str, /):
  if (handler is not None) and (not callable(handler)):
    raise TypeError(f'{name} must be callable or None, got {handler!r}')


def _handle(handler: Callable[[Any], Any], fulfill: Fulfill[Any], reject: Reject, /) -> Listener:
  def listener(argument: Any):
    transfer(absorb_call(handler, argument), fulfill, reject)

  return listener


def _finalize(on_finally: Optional[Callable[[], object]], settle: Listener, reject: Reject, /) -> Listener:
  def listener(argument: Any):
    if on_finally is not None:
      state = absorb_call(on_finally)

      if isinstance(state, Rejected):
        reject(state.reason)
        return

    settle(argument)

  return listener


__all__ = [
  'Future',
  'Fulfill',
  'Initializer',
  'Reject',
]

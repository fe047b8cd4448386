from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Pending:
  """
  The state of a future that has not settled yet.
  """


@dataclass(frozen=True, slots=True)
class Fulfilled[T]:
  """
  The state of a future that settled successfully.
  """

  value: T


@dataclass(frozen=True, slots=True)
class Rejected:
  """
  The state of a future that settled with a rejection reason.

  The reason is opaque and may be any object, not only an exception.
  """

  reason: Any


type FutureState[T] = Pending | Fulfilled[T] | Rejected
type SettledState[T] = Fulfilled[T] | Rejected


def absorb_call[**P, T](func: Callable[P, T], /, *args: P.args, **kwargs: P.kwargs) -> SettledState[T]:
  """
  Call the given function and capture its outcome as a settled state.

  Parameters
  ----------
  func
    The function to call.
  *args
    Positional arguments to pass to the function.
  **kwargs
    Keyword arguments to pass to the function.

  Returns
  -------
  Fulfilled[T] | Rejected
    `Fulfilled` with the return value, or `Rejected` with the raised exception.
    Exceptions that do not derive from `Exception` are propagated.
  """

  try:
    result = func(*args, **kwargs)
  except Exception as e:
    return Rejected(e)
  else:
    return Fulfilled(result)


def transfer[T](state: SettledState[T], fulfill: Callable[[T], object], reject: Callable[[Any], object], /):
  """
  Forward a settled state to a pair of settlement functions.

  Parameters
  ----------
  state
    The state to forward.
  fulfill
    Called with the value if the state is `Fulfilled`.
  reject
    Called with the reason if the state is `Rejected`.
  """

  match state:
    case Fulfilled(value):
      fulfill(value)
    case Rejected(reason):
      reject(reason)


__all__ = [
  'Fulfilled',
  'FutureState',
  'Pending',
  'Rejected',
  'SettledState',
  'absorb_call',
  'transfer',
]

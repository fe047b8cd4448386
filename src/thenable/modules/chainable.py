from collections.abc import Callable
from typing import Any, Optional, Protocol, TypeGuard, runtime_checkable


@runtime_checkable
class Chainable[T](Protocol):
  """
  An object whose outcome can be observed by attaching continuations.

  Any object with a callable `then` method accepting a fulfillment and a
  rejection callback is adopted by futures instead of being used as a value.
  """

  def then(
    self,
    on_fulfilled: Optional[Callable[[T], Any]] = None,
    on_rejected: Optional[Callable[[Any], Any]] = None,
    /,
  ) -> Any:
    ...


def is_chainable(value: object, /) -> TypeGuard[Chainable[Any]]:
  """
  Check whether a value should be adopted rather than used as an outcome.

  The `then` attribute is looked up dynamically, so attributes provided by
  `__getattr__` or properties count. Classes are never considered chainable,
  even when they define `then`.

  Raises
  ------
  Exception
    Any exception other than `AttributeError` raised while looking up `then`.
  """

  return (not isinstance(value, type)) and callable(getattr(value, 'then', None))


__all__ = [
  'Chainable',
  'is_chainable',
]

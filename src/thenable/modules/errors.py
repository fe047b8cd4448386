from typing import Any


class RejectionError(Exception):
  """
  An exception carrying a rejection reason that is not itself an exception.
  """

  def __init__(self, reason: Any, /):
    super().__init__(reason)
    self.reason = reason

  def __repr__(self):
    return f'{self.__class__.__name__}({self.reason!r})'


def reason_to_exception(reason: Any, /) -> BaseException:
  """
  Convert a rejection reason into an exception that can be raised.

  Parameters
  ----------
  reason
    The rejection reason.

  Returns
  -------
  BaseException
    The reason itself if it is an exception instance, otherwise a
    `RejectionError` wrapping it.
  """

  if isinstance(reason, BaseException):
    return reason

  return RejectionError(reason)


__all__ = [
  'RejectionError',
  'reason_to_exception',
]

import asyncio
import contextlib
import logging
from asyncio import AbstractEventLoop
from collections import deque
from collections.abc import Callable
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Optional, Protocol


logger = logging.getLogger(__name__)

type Callback = Callable[[], object]


class Scheduler(Protocol):
  """
  A deferred-execution queue.

  Implementations must run each scheduled task exactly once, after the caller's
  current synchronous execution unwinds, and in the order tasks were scheduled.
  """

  def schedule(self, task: Callback, /) -> None:
    ...


@dataclass(slots=True)
class QueueScheduler:
  """
  A scheduler whose queue is drained explicitly by the caller.

  Nothing runs until `run_once()` or `run_until_idle()` is called, which makes
  the order of continuations fully deterministic.
  """

  _tasks: deque[Callback] = field(default_factory=deque, init=False, repr=False)

  def __len__(self):
    return len(self._tasks)

  def schedule(self, task: Callback, /):
    self._tasks.append(task)

  def run_once(self):
    """
    Run the oldest queued task, if any.

    Returns
    -------
    bool
      Whether a task was run.
    """

    if not self._tasks:
      return False

    task = self._tasks.popleft()
    task()

    return True

  def run_until_idle(self, *, limit: Optional[int] = None):
    """
    Run queued tasks until the queue is empty.

    Tasks scheduled by running tasks are run as well, after those already
    queued.

    Parameters
    ----------
    limit
      The maximum number of tasks to run. Defaults to no limit.

    Returns
    -------
    int
      The number of tasks that were run.
    """

    logger.debug('Draining %d queued tasks', len(self._tasks))
    count = 0

    while (limit is None or count < limit) and self.run_once():
      count += 1

    return count


@dataclass(slots=True)
class AsyncioScheduler:
  """
  A scheduler running tasks as callbacks of an asyncio event loop.

  Callbacks registered with `call_soon()` run in FIFO order on the next
  iteration of the loop.
  """

  loop: Optional[AbstractEventLoop] = None
  """
  The loop to schedule tasks on. Defaults to the loop running at the time a task
  is scheduled.
  """

  def schedule(self, task: Callback, /):
    loop = self.loop if self.loop is not None else get_event_loop()

    if loop is None:
      raise RuntimeError('No event loop to schedule task on')

    loop.call_soon(task)


def get_event_loop():
  """
  Get the current event loop.

  Returns
  -------
  Optional[AbstractEventLoop]
    The current event loop, or `None` if there is none.
  """

  try:
    return asyncio.get_running_loop()
  except RuntimeError:
    return None


default_scheduler = AsyncioScheduler()
_current_scheduler = ContextVar[Optional[Scheduler]]('current_scheduler', default=None)


def get_scheduler() -> Scheduler:
  """
  Get the scheduler used by futures created without an explicit scheduler.

  Returns
  -------
  Scheduler
    The scheduler set with `set_scheduler()` in the current context, or a shared
    `AsyncioScheduler` bound to the running event loop.
  """

  scheduler = _current_scheduler.get()
  return scheduler if scheduler is not None else default_scheduler


@contextlib.contextmanager
def set_scheduler(scheduler: Scheduler, /):
  """
  Set the default scheduler for the current context.

  Parameters
  ----------
  scheduler
    The scheduler which should be used by futures created without an explicit
    scheduler.

  Returns
  -------
  AbstractContextManager[Scheduler]
    A context manager which sets the scheduler when entered and restores the
    previous one when exited.
  """

  token = _current_scheduler.set(scheduler)

  try:
    yield scheduler
  finally:
    _current_scheduler.reset(token)


__all__ = [
  'AsyncioScheduler',
  'QueueScheduler',
  'Scheduler',
  'get_scheduler',
  'set_scheduler',
]

import asyncio
from unittest import IsolatedAsyncioTestCase, TestCase

from thenable import AsyncioScheduler, Fulfilled, Future, QueueScheduler, get_scheduler, set_scheduler


class TestQueueScheduler(TestCase):
  def test_fifo(self):
    scheduler = QueueScheduler()
    order = []

    scheduler.schedule(lambda: order.append(1))
    scheduler.schedule(lambda: order.append(2))

    self.assertEqual(order, [])
    self.assertEqual(len(scheduler), 2)
    self.assertEqual(scheduler.run_until_idle(), 2)
    self.assertEqual(order, [1, 2])

  def test_run_once(self):
    scheduler = QueueScheduler()
    order = []

    self.assertFalse(scheduler.run_once())

    scheduler.schedule(lambda: order.append(1))
    scheduler.schedule(lambda: order.append(2))

    self.assertTrue(scheduler.run_once())
    self.assertEqual(order, [1])
    self.assertEqual(len(scheduler), 1)

  def test_tasks_scheduled_while_draining(self):
    scheduler = QueueScheduler()
    order = []

    def first():
      order.append('first')
      scheduler.schedule(lambda: order.append('nested'))

    scheduler.schedule(first)
    scheduler.schedule(lambda: order.append('second'))

    self.assertEqual(scheduler.run_until_idle(), 3)
    self.assertEqual(order, ['first', 'second', 'nested'])

  def test_limit(self):
    scheduler = QueueScheduler()

    for _ in range(3):
      scheduler.schedule(lambda: None)

    self.assertEqual(scheduler.run_until_idle(limit=2), 2)
    self.assertEqual(len(scheduler), 1)

  def test_task_exception_propagates(self):
    scheduler = QueueScheduler()

    def task():
      raise ValueError('task')

    scheduler.schedule(task)

    with self.assertRaises(ValueError):
      scheduler.run_until_idle()

    self.assertEqual(len(scheduler), 0)


class TestDefaultScheduler(TestCase):
  def test_default(self):
    self.assertIsInstance(get_scheduler(), AsyncioScheduler)

  def test_set_scheduler(self):
    scheduler = QueueScheduler()
    previous = get_scheduler()

    with set_scheduler(scheduler) as current:
      self.assertIs(current, scheduler)
      self.assertIs(get_scheduler(), scheduler)
      self.assertIs(Future.fulfilled(1).scheduler, scheduler)

    self.assertIs(get_scheduler(), previous)

  def test_empty_queue_scheduler_is_used(self):
    scheduler = QueueScheduler()

    with set_scheduler(scheduler):
      self.assertIs(get_scheduler(), scheduler)

  def test_no_event_loop(self):
    future = Future.fulfilled(1, scheduler=AsyncioScheduler())

    with self.assertRaises(RuntimeError):
      future.then(lambda value: value)


class TestAsyncioScheduler(IsolatedAsyncioTestCase):
  async def test_running_loop(self):
    future = Future.fulfilled(1)
    derived = future.then(lambda value: value + 1)

    self.assertFalse(derived.done())

    await asyncio.sleep(0)

    self.assertEqual(derived.state, Fulfilled(2))

  async def test_explicit_loop(self):
    scheduler = AsyncioScheduler(asyncio.get_running_loop())
    order = []

    scheduler.schedule(lambda: order.append(1))
    scheduler.schedule(lambda: order.append(2))
    order.append(0)

    await asyncio.sleep(0)

    self.assertEqual(order, [0, 1, 2])

from unittest import TestCase

from thenable import Fulfilled, Future, QueueScheduler, Rejected, RejectionError, absorb_call, is_chainable, reason_to_exception, transfer


class Interrupt(BaseException):
  pass


class TestFutureState(TestCase):
  def test_absorb_call(self):
    self.assertEqual(absorb_call(lambda a, b=0: a + b, 1, b=2), Fulfilled(3))

  def test_absorb_call_raising(self):
    error = ValueError('call')

    def func():
      raise error

    self.assertEqual(absorb_call(func), Rejected(error))

  def test_absorb_call_base_exception(self):
    def func():
      raise Interrupt

    with self.assertRaises(Interrupt):
      absorb_call(func)

  def test_transfer(self):
    calls = []

    transfer(Fulfilled(1), lambda value: calls.append(('fulfill', value)), lambda reason: calls.append(('reject', reason)))
    transfer(Rejected('x'), lambda value: calls.append(('fulfill', value)), lambda reason: calls.append(('reject', reason)))

    self.assertEqual(calls, [('fulfill', 1), ('reject', 'x')])

  def test_states_are_distinct(self):
    self.assertNotEqual(Fulfilled(None), Rejected(None))


class TestChainable(TestCase):
  def test_future(self):
    self.assertTrue(is_chainable(Future.fulfilled(1, scheduler=QueueScheduler())))

  def test_foreign(self):
    class Thenable:
      def then(self, on_fulfilled=None, on_rejected=None):
        pass

    self.assertTrue(is_chainable(Thenable()))
    self.assertFalse(is_chainable(Thenable))

  def test_dynamic_then(self):
    class Proxy:
      def __getattr__(self, name):
        if name == 'then':
          return lambda on_fulfilled=None, on_rejected=None: None

        raise AttributeError(name)

    self.assertTrue(is_chainable(Proxy()))

  def test_then_lookup_raising(self):
    class Broken:
      @property
      def then(self):
        raise ValueError('getter')

    with self.assertRaises(ValueError):
      is_chainable(Broken())

  def test_non_callable_then(self):
    class NotThenable:
      then = 3

    self.assertFalse(is_chainable(NotThenable()))

  def test_plain_values(self):
    for value in [None, 1, 'then', [], {'then': None}]:
      self.assertFalse(is_chainable(value))


class TestErrors(TestCase):
  def test_exception_reason(self):
    error = ValueError('reason')
    self.assertIs(reason_to_exception(error), error)

  def test_value_reason(self):
    exception = reason_to_exception('reason')

    self.assertIsInstance(exception, RejectionError)
    self.assertEqual(exception.reason, 'reason')
    self.assertEqual(repr(exception), "RejectionError('reason')")

  def test_exception_class_reason(self):
    exception = reason_to_exception(ValueError)

    self.assertIsInstance(exception, RejectionError)
    self.assertIs(exception.reason, ValueError)

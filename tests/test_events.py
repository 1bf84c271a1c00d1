import unittest
from unittest.mock import Mock
from memsim_core.events import EventChannel


class TestEventChannel(unittest.TestCase):

    def test_publish_to_listeners(self):
        """Test that every subscribed listener receives the payload"""
        channel = EventChannel('test', logger=Mock())
        first, second = Mock(), Mock()
        channel.subscribe(first)
        channel.subscribe(second)

        channel.publish('event')

        first.assert_called_once_with('event')
        second.assert_called_once_with('event')
        self.assertEqual(len(channel), 2)

    def test_replace_and_unsubscribe(self):
        """Test replacing the active listener and removing it"""
        channel = EventChannel('test', logger=Mock())
        old, new = Mock(), Mock()
        channel.subscribe(old)
        channel.subscribe(new, replace=True)

        channel.publish(1)
        old.assert_not_called()
        new.assert_called_once_with(1)

        self.assertTrue(channel.unsubscribe(new))
        self.assertFalse(channel.unsubscribe(new))
        self.assertEqual(len(channel), 0)

    def test_failing_listener_is_logged(self):
        """Test that a listener exception never reaches the publisher"""
        logger = Mock()
        channel = EventChannel('test', logger=logger)
        after = Mock()
        channel.subscribe(Mock(side_effect=RuntimeError("boom")))
        channel.subscribe(after)

        channel.publish('event')

        after.assert_called_once_with('event')
        logger.assert_called_once()
        self.assertIn("boom", logger.call_args[0][0])


if __name__ == '__main__':
    unittest.main()

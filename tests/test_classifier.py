import unittest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from node_monitor.monitor.classifier import classify, round_half_up

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

class TestLivenessClassifier(unittest.TestCase):
    """Test cases for the online/offline verdict"""

    def test_recent_contact_is_online(self):
        result = classify(NOW - timedelta(minutes=3), NOW, 15)
        self.assertTrue(result.is_online)
        self.assertEqual(result.minutes_since_seen, 3)

    def test_exactly_at_threshold_is_online(self):
        """The threshold boundary is inclusive"""
        result = classify(NOW - timedelta(minutes=15), NOW, 15)
        self.assertTrue(result.is_online)
        self.assertEqual(result.minutes_since_seen, 15)

    def test_just_past_threshold_is_offline(self):
        result = classify(NOW - timedelta(minutes=15, seconds=1), NOW, 15)
        self.assertFalse(result.is_online)

    def test_comparison_uses_unrounded_minutes(self):
        """15.4 minutes rounds to 15 for display but is still past a 15 minute threshold"""
        result = classify(NOW - timedelta(minutes=15, seconds=24), NOW, 15)
        self.assertFalse(result.is_online)
        self.assertEqual(result.minutes_since_seen, 15)

    def test_minutes_round_to_nearest(self):
        self.assertEqual(classify(NOW - timedelta(seconds=90), NOW, 15).minutes_since_seen, 2)
        self.assertEqual(classify(NOW - timedelta(seconds=89), NOW, 15).minutes_since_seen, 1)

    def test_zero_threshold(self):
        self.assertTrue(classify(NOW, NOW, 0).is_online)
        self.assertFalse(classify(NOW - timedelta(seconds=1), NOW, 0).is_online)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(2.49), 2)

if __name__ == '__main__':
    unittest.main()

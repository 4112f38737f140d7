#!/usr/bin/env python3
"""
Tests for ClutchStateMachine edge triggering.
"""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

from armteleop.control.clutch import ClutchState, ClutchStateMachine
from armteleop.control.messages import ButtonState

R, T, P = ButtonState.RELEASED, ButtonState.TOUCHED, ButtonState.PRESSED


class TestClutchStateMachine(unittest.TestCase):

    def test_starts_disengaged(self):
        clutch = ClutchStateMachine()
        self.assertIs(clutch.state, ClutchState.DISENGAGED)
        self.assertFalse(clutch.engaged)
        self.assertFalse(clutch.was_pressed)

    def test_toggles_only_on_rising_edges(self):
        """[released, pressed, pressed, released, pressed] toggles exactly twice."""
        clutch = ClutchStateMachine()
        history = []
        for value in [R, P, P, R, P]:
            clutch.update(value)
            history.append(clutch.engaged)

        self.assertEqual(history, [False, True, True, True, False])
        toggles = sum(1 for a, b in zip([False] + history, history) if a != b)
        self.assertEqual(toggles, 2)

    def test_update_reports_engage_events_only(self):
        clutch = ClutchStateMachine()
        self.assertTrue(clutch.update(P))   # engage
        self.assertFalse(clutch.update(P))  # held
        self.assertFalse(clutch.update(R))
        self.assertFalse(clutch.update(P))  # disengage is not an engage event
        self.assertFalse(clutch.engaged)

    def test_touch_is_not_a_press(self):
        """Touching the trackpad neither toggles nor arms the edge detector."""
        clutch = ClutchStateMachine()
        clutch.update(T)
        self.assertFalse(clutch.engaged)
        self.assertFalse(clutch.was_pressed)

        clutch.update(P)
        self.assertTrue(clutch.engaged)
        clutch.update(T)
        self.assertTrue(clutch.engaged)
        clutch.update(P)
        self.assertFalse(clutch.engaged)

    def test_sustained_press_from_start(self):
        clutch = ClutchStateMachine()
        for _ in range(5):
            clutch.update(P)
        self.assertTrue(clutch.engaged)


if __name__ == "__main__":
    unittest.main(verbosity=2)

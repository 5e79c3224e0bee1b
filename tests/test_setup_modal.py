import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from storekit.setup_modal import SetupModalState, initial_modal_state


class TestSetupModal(unittest.TestCase):
    def test_open_and_close_are_idempotent(self):
        state = SetupModalState()
        opened = state.open()
        self.assertTrue(opened.is_open)
        self.assertFalse(state.is_open)
        self.assertIs(opened.open(), opened)
        self.assertFalse(opened.close().is_open)
        self.assertIs(state.close(), state)

    def test_initial_state_follows_store_count(self):
        self.assertTrue(initial_modal_state(0).is_open)
        self.assertFalse(initial_modal_state(2).is_open)


if __name__ == "__main__":
    unittest.main()

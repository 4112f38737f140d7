"""
Operator clutch: engage/disengage tracking on a button press.
"""

from enum import Enum

from armteleop.control.messages import ButtonState


class ClutchState(Enum):
    DISENGAGED = "disengaged"
    ENGAGED = "engaged"


class ClutchStateMachine:
    """
    Toggles between DISENGAGED and ENGAGED on each rising edge of the clutch
    button (any value other than PRESSED followed by PRESSED). Holding or
    releasing the button never toggles.
    """

    def __init__(self):
        self.state = ClutchState.DISENGAGED
        self.was_pressed = False

    @property
    def engaged(self) -> bool:
        return self.state is ClutchState.ENGAGED

    def update(self, button: ButtonState) -> bool:
        """
        Feed the clutch button's raw value for one sample.

        Returns:
            True if this sample engaged the clutch.
        """
        pressed = button == ButtonState.PRESSED
        engaged_now = False

        if pressed and not self.was_pressed:
            if self.state is ClutchState.DISENGAGED:
                self.state = ClutchState.ENGAGED
                engaged_now = True
            else:
                self.state = ClutchState.DISENGAGED

        self.was_pressed = pressed
        return engaged_now

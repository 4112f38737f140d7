"""
Inbound and outbound message types for one control cycle.

Inbound: ControllerSample (one tracked hand controller).
Outbound: JointCommand (arm) and GripperCommand (3-finger gripper).
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Sequence, Tuple

import numpy as np

from armteleop.control.pose import Pose

NUM_JOINTS = 7
NUM_BUTTONS = 4
NUM_AXES = 3

# Button slots
BUTTON_MENU = 0
BUTTON_RESET = 1  # grip
BUTTON_CLUTCH = 2  # trackpad
BUTTON_TRIGGER = 3

# Axis slots: trackpad x, trackpad y, trigger
AXIS_GRIPPER = 2


class ButtonState(IntEnum):
    RELEASED = 0
    TOUCHED = 1
    PRESSED = 2


class ArmRole(Enum):
    """Which hand controller drives an arm."""
    UNASSIGNED = "unassigned"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class ControllerSample:
    """
    One tracked controller at one instant. Immutable once received.

    Attributes:
        id: Tracking id of the controller.
        pose: Controller pose in the tracking frame.
        buttons: Four tri-state button values.
        axes: Three analog axes in [-1, 1].
    """
    id: int
    pose: Pose
    buttons: Tuple[ButtonState, ...]
    axes: Tuple[float, ...]

    def __post_init__(self):
        if len(self.buttons) != NUM_BUTTONS:
            raise ValueError(f"Expected {NUM_BUTTONS} buttons, got {len(self.buttons)}")
        if len(self.axes) != NUM_AXES:
            raise ValueError(f"Expected {NUM_AXES} axes, got {len(self.axes)}")
        object.__setattr__(self, "buttons", tuple(ButtonState(b) for b in self.buttons))
        object.__setattr__(self, "axes", tuple(float(a) for a in self.axes))

    def button(self, index: int) -> ButtonState:
        return self.buttons[index]

    def is_pressed(self, index: int) -> bool:
        return self.buttons[index] == ButtonState.PRESSED

    @classmethod
    def from_dict(cls, data: dict) -> "ControllerSample":
        """
        Parse the wire form:

            {"id": 1,
             "pose": {"position": [x, y, z], "orientation": [x, y, z, w]},
             "buttons": [0, 0, 2, 0],
             "axes": [0.0, 0.0, 0.5]}
        """
        pose = data["pose"]
        return cls(
            id=int(data["id"]),
            pose=Pose.from_position_quaternion(pose["position"], pose["orientation"]),
            buttons=tuple(data.get("buttons", (ButtonState.RELEASED,) * NUM_BUTTONS)),
            axes=tuple(data.get("axes", (0.0,) * NUM_AXES)),
        )


class JointCommand(tuple):
    """Joint position command in joint order, radians."""

    def __new__(cls, positions: Sequence[float]):
        return super().__new__(cls, (float(p) for p in positions))

    def as_array(self) -> np.ndarray:
        return np.array(self, dtype=np.float64)


@dataclass(frozen=True)
class ActuatorCommand:
    position: float
    speed: float = 1.0
    force: float = 1.0


@dataclass(frozen=True)
class GripperCommand:
    """Command for a 3-finger gripper with a scissor (finger spread) axis."""
    scissor: ActuatorCommand
    finger_a: ActuatorCommand
    finger_b: ActuatorCommand
    finger_c: ActuatorCommand

    @property
    def fingers(self) -> Tuple[float, float, float]:
        return (self.finger_a.position, self.finger_b.position, self.finger_c.position)

    @classmethod
    def uniform(cls, value: float, speed: float = 1.0, force: float = 1.0) -> "GripperCommand":
        """Drive scissor and all fingers to the same closure fraction in [0, 1]."""
        position = float(np.clip(value, 0.0, 1.0))
        actuator = ActuatorCommand(position=position, speed=speed, force=force)
        return cls(scissor=actuator, finger_a=actuator, finger_b=actuator, finger_c=actuator)

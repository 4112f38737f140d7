#!/usr/bin/env python3
"""
Replay a recorded controller log through the teleoperation core.

Each line of the log is one JSON object:

    {"controllers": [{"id": 1, "pose": {"position": [...], "orientation": [...]},
                      "buttons": [0, 0, 2, 0], "axes": [0, 0, 0.3]}, ...],
     "measured": {"left_arm": [q1, ..., q7]}}

"measured" is optional; when present it is applied before the controllers.
Nothing is sent to hardware; accepted commands are printed.

Usage:
    python scripts/replay_teleop.py --config configs/dual_arm.yaml --log session.jsonl
    python scripts/replay_teleop.py --config configs/dual_arm.yaml --log session.jsonl --follow-commands
    python scripts/replay_teleop.py --config configs/dual_arm.yaml --urdf /path/to/robot.urdf --log session.jsonl
"""

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path

from armteleop import ControllerSample, TeleopConfig, TeleopSystem


def print_separator(title: str = "") -> None:
    if title:
        print(f"\n{'=' * 60}")
        print(f"  {title}")
        print('=' * 60)
    else:
        print('-' * 60)


def replay(system: TeleopSystem, log_path: Path, follow_commands: bool, verbose: bool) -> Counter:
    stats = Counter()

    with open(log_path, "r") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            frame = json.loads(line)

            for arm_name, positions in frame.get("measured", {}).items():
                system.update_measured_state(arm_name, positions)

            samples = [ControllerSample.from_dict(c) for c in frame.get("controllers", [])]
            results = system.control(samples)
            stats["frames"] += 1

            for arm_name, result in results.items():
                if result.accepted:
                    stats[f"{arm_name}/accepted"] += 1
                    if follow_commands:
                        # No robot attached: treat the command as reached
                        system.update_measured_state(arm_name, result.arm_command.as_array())
                elif result.target_pose is not None:
                    key = "rejected" if result.num_solutions else "no_solution"
                    stats[f"{arm_name}/{key}"] += 1

                if verbose and result.arm_command is not None:
                    joints = ", ".join(f"{q:+.3f}" for q in result.arm_command)
                    print(f"[{line_no:5d}] {arm_name}: [{joints}]")

    return stats


def main():
    parser = argparse.ArgumentParser(description="Replay a controller log through the teleop core")
    parser.add_argument("--config", required=True, help="YAML teleop config")
    parser.add_argument("--log", required=True, help="JSON-lines controller log")
    parser.add_argument("--urdf", help="Override the config's urdf_path")
    parser.add_argument("--follow-commands", action="store_true",
                        help="Feed accepted commands back as measured state")
    parser.add_argument("--verbose", action="store_true", help="Print every accepted command")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    log_path = Path(args.log)
    if not log_path.exists():
        print(f"ERROR: log not found at {log_path}")
        return 1

    config = TeleopConfig.from_yaml(args.config)
    if args.urdf:
        config.urdf_path = args.urdf

    print_separator("Building arms")
    try:
        system = TeleopSystem.from_config(config)
    except FileNotFoundError as e:
        print(f"ERROR: {e} (pass --urdf to point at the robot description)")
        return 1
    for name, arm in system.arms.items():
        print(f"  {name}: role={arm.role.name} controller_id={arm.controller_id}")

    print_separator("Replaying")
    stats = replay(system, log_path, args.follow_commands, args.verbose)

    print_separator("Summary")
    print(f"  frames: {stats.pop('frames', 0)}")
    for key in sorted(stats):
        print(f"  {key}: {stats[key]}")

    print("\nJoint state:")
    for joint_name, position in system.joint_state().items():
        print(f"  {joint_name}: {position:+.4f} rad")
    return 0


if __name__ == "__main__":
    sys.exit(main())

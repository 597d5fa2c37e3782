"""
CLI entry point for the movemaster-console command.

Opens the arm, prints its position and runs raw commands given on the command
line, or read line by line from stdin when none are given.
"""

import argparse
import logging
import sys

from movemaster import config as cfg
from movemaster.config import TRACE
from movemaster.robot import MovemasterRobotArm
from movemaster.transports import create_transport
from movemaster.utils.errors import MovemasterError

logger = logging.getLogger(__name__)


def _log_level(args: argparse.Namespace) -> int:
    if args.log_level:
        return TRACE if args.log_level == 'TRACE' else getattr(logging, args.log_level)
    if args.verbose >= 3:
        return TRACE
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    if args.quiet:
        return logging.WARNING
    return getattr(logging, cfg.LOG_LEVEL_DEFAULT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Movemaster RV-M1 console')
    parser.add_argument('commands', nargs='*', help='Raw commands to run, e.g. "WH" "SP 5"')
    parser.add_argument('--serial', help='Serial port (e.g., /dev/ttyUSB0 or COM3)')
    parser.add_argument('--fake-serial', action='store_true', help='Use the simulated drive unit')
    parser.add_argument('--save-port', action='store_true', help='Remember --serial for later runs')
    parser.add_argument('--r-mode', choices=['absolute', 'relative'], default=cfg.R_MODE_DEFAULT,
                        help='Interpretation of the R axis of move targets')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Enable quiet logging (WARNING level)')
    parser.add_argument('--log-level', choices=['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Set specific log level')
    return parser


def run_commands(robot: MovemasterRobotArm, commands) -> int:
    """Run each command, print its answer. Returns the number of failed commands."""
    failures = 0
    for line in commands:
        command = line.strip()
        if not command:
            continue
        answer = robot.run_command(command)
        status = "OK" if answer.success else "ERROR"
        print(f"{command} -> {status} {answer.response or ''}".rstrip())
        if not answer.success:
            failures += 1
    return failures


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=_log_level(args),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )

    port = args.serial or cfg.get_com_port_with_fallback() or None
    transport_type = 'mock' if args.fake_serial else None
    if args.save_port and args.serial:
        cfg.save_com_port(args.serial)

    try:
        transport = create_transport(transport_type, port=port)
        with MovemasterRobotArm.create(port, transport=transport, r_mode=args.r_mode) as robot:
            print(f"Position: {robot.get_pose()}")
            if args.commands:
                return 1 if run_commands(robot, args.commands) else 0
            try:
                run_commands(robot, sys.stdin)
            except KeyboardInterrupt:
                logger.info("Shutting down...")
            return 0
    except MovemasterError as e:
        logger.error(f"{e}")
        return 1


def main_entry():
    """Entry point for the movemaster-console command."""
    sys.exit(main())


if __name__ == "__main__":
    main_entry()

#!/usr/bin/env python3
"""
CashCode Bill Validator - diagnostic entry point.

Opens the validator, prints its identification and bill table, then
polls once a second and prints every state change.

Usage:
    python main.py [--port /dev/ttyUSB0] [--baudrate 9600] [--debug]
"""

import argparse
import logging
import sys
import time
from dataclasses import replace

from ccvalidator import (
    CashCodeValidator,
    ValidatorError,
    get_settings,
)
from ccvalidator.loggers import get_logger, log_frame


POLL_INTERVAL_S = 1.0


def run(port: str, baudrate: int, debug: bool) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    settings = get_settings()
    if debug:
        settings = replace(settings, logging=replace(settings.logging, level="DEBUG"))
    logger = get_logger("ccvalidator", settings.logging)

    validator = CashCodeValidator(
        port=port,
        baudrate=baudrate,
        settings=settings,
        frame_observer=log_frame if debug else None,
    )

    try:
        validator.open()
        validator.reset()

        identification = validator.get_identification()
        print(f"Part number:   {identification.part_number}")
        print(f"Serial number: {identification.serial_number}")
        print(f"Asset number:  {identification.asset_number.hex(' ')}")

        print("Bill table:")
        for bill_type, bill in enumerate(validator.get_bill_table()):
            if bill.denomination:
                print(f"  {bill_type:2d}: {bill.denomination:g} {bill.country_code}")

        print("Polling, press Ctrl+C to exit.")
        last_state = None
        while True:
            response = validator.poll()
            if response.state != last_state:
                reason = response.parameter_name
                suffix = f" ({reason})" if reason else ""
                print(f"State: {response.state_name}{suffix}")
                last_state = response.state
            time.sleep(POLL_INTERVAL_S)

    except ValidatorError as e:
        logger.error(f"{e.code}: {e.message}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 0
    finally:
        if validator.is_open:
            validator.close()


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='CashCode Bill Validator diagnostics',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        '--port', '-p',
        type=str,
        default='/dev/ttyUSB0',
        help='Serial port path',
    )
    parser.add_argument(
        '--baudrate', '-b',
        type=int,
        choices=(9600, 19200),
        default=9600,
        help='Serial baudrate',
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging (shows HEX dump of all TX/RX frames)',
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    sys.exit(run(args.port, args.baudrate, args.debug))

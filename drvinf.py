#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import sys

from drvinf.cli.argument_parser import parse_args_with_config
from drvinf.orchestrator.orchestrator import Orchestrator
from drvinf.core.exceptions import Fatal


def main() -> None:
    logger = None

    # Phase 1: parse (Fatal can happen here)
    try:
        args, _conf, logger = parse_args_with_config()
    except Fatal as e:
        # The config layer logs through U.die(logger, ...); only print if no logger exists yet.
        if logger is None:
            print(f"💥 ERROR    {e}", file=sys.stderr)
        raise SystemExit(getattr(e, "code", 1))
    except KeyboardInterrupt:
        if logger is None:
            print("Interrupted by user (Ctrl+C).", file=sys.stderr)
        else:
            logger.warning("Interrupted by user (Ctrl+C).")
        raise SystemExit(130)

    # Phase 2: run the command
    try:
        rc = Orchestrator(logger, args).run()
    except Fatal as e:
        # engine errors surface here as Fatal without having been logged
        logger.error(str(e))
        rc = getattr(e, "code", 1)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C).")
        rc = 130

    raise SystemExit(rc)


if __name__ == "__main__":
    main()

from __future__ import annotations
import sys
from .cli.argument_parser import parse_args_with_config
from .orchestrator.orchestrator import Orchestrator
from .core.exceptions import Fatal
def main() -> None:
    try:
        args, _conf, logger = parse_args_with_config()
    except Fatal as e:
        # config layer already logged via U.die
        sys.exit(int(e.code))
    try:
        rc = Orchestrator(logger, args).run()
    except Fatal as e:
        logger.error(str(e))
        rc = e.code
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C).")
        rc = 130
    sys.exit(int(rc))
if __name__ == "__main__":
    main()

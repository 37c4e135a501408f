"""
gq command line

Resolves flags into an Intent and dispatches it to the orchestrator or to
one of the one-shot actions.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from gq import __version__
from gq.actions import ACTIONS, run_action
from gq.errors import ConfigError, GqError
from gq.intent import Intent, LogToggles, Operation, Topology
from gq.orchestrator import Orchestrator
from gq.shared.config import ConfigManager
from gq.shared.logging import setup_cli_logging
from gq.shutdown import ShutdownHandler


logger = logging.getLogger("gq.cli")

EPILOG = """\
examples:
  gq --start --full-stack --log-fastapi     engine, API and frontend in the background
  gq -up -s -c -loem1                       compile, then attach to the engine
  gq --run-oems --remote-dev --compile-oems compile and run against the remote env
  gq --stop                                 stop everything gq started
  gq clone oems frontend                    clone selected repositories
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gq",
        description="Start, stop and sequence the trading platform's local services.",
        epilog=EPILOG,
        add_help=False,
        allow_abbrev=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    operations = parser.add_argument_group("operations (one per invocation)")
    exclusive = operations.add_mutually_exclusive_group()
    for flags, operation, help_text in (
        (("-i", "--init"), Operation.INIT, "install dependencies"),
        (("-a", "--auth"), Operation.AUTH, "generate an SSH key"),
        (("-sg", "--setup-gotrade"), Operation.SETUP, "set up the local environment"),
        (("-up", "--start"), Operation.START, "start services for the selected dev mode"),
        (("-down", "--stop"), Operation.STOP, "stop everything gq started"),
        (("-r", "--run-oems"), Operation.RUN_ENGINE, "run only the engine, in the foreground"),
        (("-st", "--status"), Operation.STATUS, "show registered services"),
        (("-h", "--help"), Operation.HELP, "show this help and exit"),
    ):
        exclusive.add_argument(*flags, dest="operation", action="store_const",
                               const=operation, help=help_text)

    modes = parser.add_argument_group("dev mode")
    mode = modes.add_mutually_exclusive_group()
    mode.add_argument("-rd", "--remote-dev", dest="dev_mode", action="store_const",
                      const=Topology.REMOTE, help="engine only, against the remote environment")
    mode.add_argument("-s", "--standard-dev", dest="dev_mode", action="store_const",
                      const=Topology.SINGLE_SERVICE, help="engine only, attached (default)")
    mode.add_argument("-f", "--full-stack", dest="dev_mode", action="store_const",
                      const=Topology.FULL_STACK, help="engine, API and frontend in the background")

    builds = parser.add_argument_group("build toggles")
    builds.add_argument("-c", "--compile-oems", dest="compile", action="store_true",
                        help="compile the engine before running it")
    builds.add_argument("-g", "--build-gq", dest="build_packages", action="store_true",
                        help="build the gq packages before starting the API")
    builds.add_argument("-w", "--reset", dest="reset", action="store_true",
                        help="wipe the database volume before starting it")
    builds.add_argument("-bf", "--build-frontend", dest="build_frontend", action="store_true",
                        help="install and build the frontend before starting it")

    logs = parser.add_argument_group("log toggles")
    logs.add_argument("-loem1", "--log-oems1", dest="log_engine1", action="store_true",
                      help="show engine output")
    logs.add_argument("-loem2", "--log-oems2", dest="log_engine2", action="store_true",
                      help="show remote engine output")
    logs.add_argument("-lapi", "--log-fastapi", dest="log_api", action="store_true",
                      help="show API output")
    logs.add_argument("-lui", "--log-frontend", dest="log_frontend", action="store_true",
                      help="show frontend output")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", nargs="*", metavar="clone [repo ...]",
                        help="clone the given repositories (all by default)")
    return parser


def resolve_intent(parser: argparse.ArgumentParser, args: argparse.Namespace) -> Intent:
    """Normalize parsed arguments into an Intent"""
    operation = args.operation
    repos: tuple = ()

    if args.command:
        if args.command[0] != "clone":
            parser.error(f"unrecognized arguments: {' '.join(args.command)}")
        if operation is not None:
            parser.error("clone cannot be combined with another operation")
        operation = Operation.CLONE
        repos = tuple(args.command[1:])

    if operation is None:
        operation = Operation.HELP

    return Intent(
        operation=operation,
        dev_mode=args.dev_mode or Topology.SINGLE_SERVICE,
        compile=args.compile,
        build_packages=args.build_packages,
        reset=args.reset,
        build_frontend=args.build_frontend,
        logs=LogToggles(
            engine1=args.log_engine1,
            engine2=args.log_engine2,
            api=args.log_api,
            frontend=args.log_frontend,
        ),
        repos=repos,
    )


def run(intent: Intent, config: ConfigManager) -> int:
    """Execute a resolved intent and return the process exit code"""
    if intent.operation in ACTIONS:
        return run_action(intent, config)

    orchestrator = Orchestrator(config)

    if intent.operation is Operation.STOP:
        orchestrator.stop()
        return 0

    if intent.operation is Operation.STATUS:
        status = [{"pid": pid, "alive": alive} for pid, alive in orchestrator.status()]
        print(json.dumps({"registry": str(orchestrator.registry.path), "services": status}, indent=2))
        return 0

    handler = ShutdownHandler(orchestrator)
    handler.install()
    try:
        if intent.operation is Operation.RUN_ENGINE:
            result = orchestrator.run_engine(intent)
        else:
            result = orchestrator.start(intent)
    except GqError:
        if orchestrator.owned_handles:
            pids = [handle.pid for handle in orchestrator.owned_handles]
            logger.warning(f"⚠️ Services started before the failure are still running (PIDs: {pids}); "
                           "run gq --stop to clean up")
        raise
    finally:
        handler.restore()

    if result.detached:
        names = ", ".join(f"{handle.name} ({handle.pid})" for handle in result.handles)
        logger.info(f"✅ Running in the background: {names}. Stop with: gq --stop")
    return result.exit_code


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)
    intent = resolve_intent(parser, args)

    if intent.operation is Operation.HELP:
        parser.print_help()
        return 1

    config = ConfigManager()
    setup_cli_logging(config)

    try:
        if not config.validate_config():
            raise ConfigError("; ".join(config.get_validation_errors()))
        logger.debug(f"Configuration: {config.get_config_summary()}")
        return run(intent, config)
    except GqError as e:
        logger.error(f"❌ {e}")
        return e.exit_code


if __name__ == "__main__":
    sys.exit(main())

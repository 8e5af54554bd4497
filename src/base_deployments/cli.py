"""Command line interface: base-deployments deploy | verify | report."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import ConfigLoader
from .constants import (
    CONFIRMATION_TIMEOUT,
    DEFAULT_CONFIRMATIONS,
    DEFAULT_OPTIMIZER_RUNS,
    NETWORK_CONFIG,
    VERIFY_POLL_INTERVAL,
    VERIFY_TIMEOUT,
)
from .exceptions import DeploymentError
from .logging_setup import setup_logging
from .pipeline import report_deployments, run_deployment, verify_address
from .types import VerificationStatus

logger = logging.getLogger(__name__)


def _constructor_args(text: str) -> List:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"not valid JSON: {e}") from None
    if not isinstance(value, list):
        raise argparse.ArgumentTypeError("must be a JSON list, e.g. '[42, \"0xabc...\"]'")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="base-deployments",
        description="Compile, deploy and verify Solidity contracts on Base",
    )
    p.add_argument("--env-file", default=None, help="read settings from a .env file")
    p.add_argument(
        "--state-dir",
        default=None,
        help="deployment log directory (default: ./.base-deployments)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    p.add_argument("--log-json", action="store_true", help="log as JSON lines")

    sub = p.add_subparsers(dest="command", required=True)

    deploy = sub.add_parser("deploy", help="compile, deploy and verify a contract")
    deploy.add_argument(
        "--network", default="mainnet", choices=sorted(NETWORK_CONFIG), help="target network"
    )
    deploy.add_argument(
        "--source",
        action="append",
        required=True,
        help="Solidity source file (repeat for several)",
    )
    deploy.add_argument("--contract", default=None, help="contract name to deploy")
    deploy.add_argument(
        "--compiler-version", default=None, help="required solc version, e.g. 0.8.24"
    )
    deploy.add_argument("--solc", default=None, help="solc binary (default: $SOLC_BINARY or solc)")
    deploy.add_argument(
        "--optimizer-runs",
        type=int,
        default=DEFAULT_OPTIMIZER_RUNS,
        help="optimizer runs (default: %(default)s)",
    )
    deploy.add_argument("--no-optimize", action="store_true", help="disable the optimizer")
    deploy.add_argument(
        "--constructor-args",
        type=_constructor_args,
        default=[],
        help="constructor arguments as a JSON list",
    )
    deploy.add_argument(
        "--confirmations",
        type=int,
        default=DEFAULT_CONFIRMATIONS,
        help="confirmations to wait for (default: %(default)s)",
    )
    deploy.add_argument(
        "--confirmation-timeout",
        type=float,
        default=CONFIRMATION_TIMEOUT,
        help="seconds to wait for confirmation (default: %(default)s)",
    )
    deploy.add_argument("--no-verify", action="store_true", help="skip explorer verification")
    _add_verify_options(deploy)

    verify = sub.add_parser("verify", help="verify a deployed contract on the explorer")
    verify.add_argument("--address", required=True, help="contract address")
    verify.add_argument(
        "--network", default="mainnet", choices=sorted(NETWORK_CONFIG), help="network"
    )
    _add_verify_options(verify)

    report = sub.add_parser("report", help="list recorded deployments")
    report.add_argument(
        "--network", default=None, choices=sorted(NETWORK_CONFIG), help="only this network"
    )
    return p


def _add_verify_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--verify-timeout",
        type=float,
        default=VERIFY_TIMEOUT,
        help="seconds to wait for the explorer (default: %(default)s)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=VERIFY_POLL_INTERVAL,
        help="seconds between status checks (default: %(default)s)",
    )


def _run(args: argparse.Namespace) -> int:
    if args.command == "report":
        report_deployments(args.network, state_dir=args.state_dir)
        return 0

    loader = ConfigLoader(env_file=args.env_file)

    if args.command == "deploy":
        run_deployment(
            args.source,
            args.network,
            contract_name=args.contract,
            compiler_version=args.compiler_version,
            constructor_args=args.constructor_args,
            loader=loader,
            state_dir=args.state_dir,
            verify=not args.no_verify,
            solc=args.solc,
            optimize=not args.no_optimize,
            optimizer_runs=args.optimizer_runs,
            confirmations=args.confirmations,
            confirmation_timeout=args.confirmation_timeout,
            verify_timeout=args.verify_timeout,
            verify_poll_interval=args.poll_interval,
        )
        # Deployment succeeded; verification outcome is reported, not fatal
        return 0

    result = verify_address(
        args.address,
        args.network,
        loader=loader,
        state_dir=args.state_dir,
        timeout=args.verify_timeout,
        poll_interval=args.poll_interval,
    )
    return 1 if result.status is VerificationStatus.FAILED else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_json)

    try:
        return _run(args)
    except DeploymentError as e:
        logger.debug("Aborted", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        print(f"hint: {e.remedy}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())

"""Command line interface for promotrack with subcommands."""

import argparse
import logging
import sys
import textwrap
from pathlib import Path

from promotrack import __version__, config, setup_logging
from promotrack.api import banks
from promotrack.check import check
from promotrack.checks import PromotrackError
from promotrack.template import init

logger = logging.getLogger(__name__)


def process_common_options(args, raw_args):
    # set up logging
    loglevel = logging.INFO + (args.quieter - args.verboser) * 10
    logfile = args.logfile
    if logfile is None:
        setup_logging(loglevel)
    else:
        logfile.parents[0].mkdir(exist_ok=True, parents=True)
        setup_logging(loglevel, logfile)

    logger.info("Executing cmd: promotrack %s", " ".join(raw_args))
    logger.debug("Processing common options.")

    # load config
    if args.config is not None:
        if args.config.exists():
            config.load_config(config_file=Path(args.config))
        else:
            msg = "Config file not found at: %s"
            logger.error(msg, args.config)
            raise PromotrackError(msg % args.config)

    # check WORKBOOK (init creates it, all other commands need it)
    if args.WORKBOOK is None:
        args.WORKBOOK = config.SETTINGS.workbook
    if args.subcommand != "init" and not args.WORKBOOK.exists():
        msg = "Workbook not found: %s"
        logger.error(msg, args.WORKBOOK)
        raise PromotrackError(msg % args.WORKBOOK)


class DecentFormatter(argparse.HelpFormatter):
    """
    An argparse formatter that preserves newlines & keeps indentation.
    """

    def _fill_text(self, text, width, indent):
        """
        Reformat text while keeping newlines for lines shorter than width.
        """
        lines = []
        for line in textwrap.indent(textwrap.dedent(text), indent).splitlines():
            lines.append(textwrap.fill(line, width, subsequent_indent=indent))
        return "\n".join(lines)

    def _split_lines(self, text, width):
        """
        Conserve indentation in help/description lines when splitting long lines.
        """
        lines = []
        for line in textwrap.dedent(text).splitlines():
            if not line.strip():  # pragma: no cover
                continue
            indent = " " * (len(line) - len(line.lstrip()))
            lines.extend(
                textwrap.fill(line, width, subsequent_indent=indent).splitlines()
            )
        return lines


def root_cmd(args):
    if args.version:  # pragma: no cover
        print(f"promotrack {__version__}")


def create_root_parser():
    parser = argparse.ArgumentParser(
        prog="promotrack",
        description=(
            "Track bank accounts, promotions, their conditions and transfers "
            "in an Excel (xlsx) workbook."
        ),
        allow_abbrev=False,
        formatter_class=DecentFormatter,
    )
    parser.add_argument(
        "-V",
        "--version",
        help="The version of promotrack command line interface.",
        action="store_true",
    )
    parser.set_defaults(func=root_cmd)
    return parser


def create_common_options_parser():
    parser = argparse.ArgumentParser(
        prog="promotrack",
        allow_abbrev=False,
        add_help=False,
        formatter_class=DecentFormatter,
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "-v",
        "--verbose",
        action="count",
        dest="verboser",
        default=0,
        help="More verbose output. Repeat to increase verbosity (-vv or -vvv).",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        dest="quieter",
        help="Less verbose output. Repeat to reduce verbosity (-qq or -qqq).",
    )
    parser.add_argument(
        "--config",
        help=('Path to config file (typically "promotrack.toml").'),
        type=Path,
        required=False,
    )
    parser.add_argument(
        "-l",
        "--logfile",
        help=(
            "Activate logging to a file at given path. "
            "The path will be created if it is not existing."
        ),
        type=Path,
    )
    return parser


def add_workbook_argument(parser):
    parser.add_argument(
        "WORKBOOK",
        nargs="?",
        type=Path,
        help=(
            "The xlsx workbook to work on. "
            'Defaults to the "workbook" setting of the config.'
        ),
    )


def add_init_subparser(subparsers, options):
    """Create a new workbook with all sheets and their headers."""
    parser = subparsers.add_parser(
        "init",
        description=(
            "Create a new workbook with all sheets and their header rows. "
            "An existing file is only replaced with --force."
        ),
        help="Create a new promotions workbook.",
        **options,
    )
    parser.add_argument(
        "--sample-data",
        help="Fill the sheets with a small set of example records.",
        default=False,
        action="store_true",
    )
    parser.add_argument(
        "--force",
        help="Enforce overwriting an existing workbook.",
        default=False,
        action="store_true",
    )
    add_workbook_argument(parser)
    parser.set_defaults(func=init)


def add_check_subparser(subparsers, options):
    """Verify sheets, headers and configuration keys of a workbook."""
    parser = subparsers.add_parser(
        "check",
        description=(
            "Check that the workbook has all sheets, that the header rows match "
            "the expected columns and that the required configuration keys "
            "are present."
        ),
        help="Check the structure of a workbook.",
        **options,
    )
    add_workbook_argument(parser)
    parser.set_defaults(func=check)


def add_banks_subparser(subparsers, options):
    """List and edit the banks of a workbook."""
    parser = subparsers.add_parser(
        "banks",
        description=(
            "List, show, add or edit banks. The result is printed as JSON.\n"
            "Deactivated banks are kept in the workbook, use --purge to remove "
            "a bank permanently."
        ),
        help="List and edit banks.",
        **options,
    )
    actions = parser.add_argument_group("Actions")
    action = actions.add_mutually_exclusive_group()
    action.add_argument(
        "--list",
        help="List banks (default action).",
        action="store_true",
    )
    action.add_argument("--show", metavar="ID", help="Show a single bank.")
    action.add_argument("--add", metavar="NAME", help="Add a new bank.")
    action.add_argument(
        "--rename", nargs=2, metavar=("ID", "NAME"), help="Rename a bank."
    )
    action.add_argument("--deactivate", metavar="ID", help="Deactivate a bank.")
    action.add_argument("--activate", metavar="ID", help="Activate a bank again.")
    action.add_argument(
        "--purge",
        metavar="ID",
        help="Remove a bank permanently. This cannot be undone.",
    )
    options_group = parser.add_argument_group("Options")
    options_group.add_argument(
        "--all",
        help="Include inactive banks in the list.",
        default=False,
        action="store_true",
    )
    options_group.add_argument(
        "--bodega",
        help="Mark the added bank as bodega account.",
        default=False,
        action="store_true",
    )
    options_group.add_argument(
        "--bizum",
        help="Mark the added bank as supporting Bizum.",
        default=False,
        action="store_true",
    )
    add_workbook_argument(parser)
    parser.set_defaults(func=banks)


def main_cli(raw_args=None):
    """Setup CLI app and run commands based on args."""
    # Create root parser for cli app
    parser = create_root_parser()

    subparsers = parser.add_subparsers(
        title="Subcommands",
        dest="subcommand",
        description="Get help for commands with promotrack COMMAND --help",
    )
    # Create parser to share some options between subparsers. We cannot use the
    # root parser for this because it includes the sub-commands and their help.
    common_options_parser = create_common_options_parser()

    # Create the subparsers with some common options
    common_options = {
        "parents": [common_options_parser],
        "formatter_class": DecentFormatter,
    }
    add_init_subparser(subparsers, common_options)
    add_check_subparser(subparsers, common_options)
    add_banks_subparser(subparsers, common_options)

    if not raw_args:
        parser.print_help()
        return

    # Parse the command-line arguments
    #   pars_args will call sys.exit(2) if invalid commands are given.
    args = parser.parse_args(raw_args)
    if hasattr(args, "config"):
        process_common_options(args, raw_args)
    args.func(args)


def run_cli_app(raw_args=None):
    """Entry point for running the cli app."""
    if raw_args is None:
        raw_args = sys.argv[1:]
    try:
        main_cli(raw_args)
    except PromotrackError as e:
        logger.error("Terminating with error: %s", e)  # noqa: TRY400
        sys.exit(1)
    except Exception:  # pragma: no cover
        logger.exception("Unexpected error.")
        sys.exit(3)  # value 2 is used by argparse for invalid args.


if __name__ == "__main__":
    run_cli_app(sys.argv[1:])

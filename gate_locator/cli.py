#! /usr/bin/env python3
import argparse
import json
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gate_locator import gates
from gate_locator import search
from gate_locator.config import GetFileSettings, LocatorConfig, get_files
from gate_locator.document import read_file_by_lines
from gate_locator.gate_data import GateData
from gate_locator.selector import Selector

console = Console()


def print_gate_data(gate: str, gate_data: GateData, as_json: bool = False):
    """Prints the located results of a gate, one table per label."""
    if as_json:
        console.print_json(json.dumps(gate_data.as_dict()))
        return

    if gate_data.total_messages == 0:
        console.print(f"[green]{gate}: no results have been found.[/green]")
        return

    for results in gate_data.data:
        if not results.result:
            continue
        table = Table(title=f"{gate} - {results.label}", show_lines=False)
        table.add_column("File", style="cyan")
        table.add_column("Line", justify="right")
        table.add_column("Column", justify="right")
        table.add_column("Message")
        for file_messages in results.result:
            for gate_result in file_messages.messages:
                location = gate_result.location
                if location.found:
                    line, column = str(location.line_number + 1), str(location.column_number + 1)
                else:
                    line, column = "[yellow]not found[/yellow]", "-"
                table.add_row(escape(file_messages.file_name), line, column, escape(gate_result.message))
        console.print(table)

    unresolved = sum(len(f.unresolved) for results in gate_data.data for f in results.result)
    if unresolved:
        console.print(f"[yellow]{unresolved} result(s) could not be located.[/yellow]")


def _locate(args, config: LocatorConfig) -> int:
    document = read_file_by_lines(args.file)
    if document is None:
        return 1

    selector = Selector.literal(args.selector) if args.literal else Selector.structural(args.selector)
    segments = selector.segments
    if not segments:
        console.print(f"[yellow]{escape(str(selector))} cannot be located.[/yellow]")
        return 1

    result = search.hierarchy_search_in_file(document, segments, max_lines=config.max_lines,
                                             debug=config.debug_search)
    if not result.found:
        console.print(f"[yellow]{escape(str(selector))} not found![/yellow]")
        return 1

    column = search.highlight_column(document.lines[result.requested_line], result.depth,
                                     segments[-1], indent_width=config.indent_width)
    console.print(Panel(
        f"Segments: {' > '.join(str(s) for s in segments)}\n"
        f"Line: {result.requested_line + 1}\n"
        f"Depth: {result.depth}\n"
        f"Column: {column + 1}\n"
        f"[dim]{escape(document.lines[result.requested_line])}[/dim]",
        title=args.file, expand=False))
    return 0


def _selected_files(args, extensions) -> Optional[List[str]]:
    """Files picked by --scan / --saved, or None when neither was given."""
    if not args.scan and not args.saved:
        return None
    return get_files(GetFileSettings(list(extensions), args.scan), args.saved)


def _run_gate(args, config: LocatorConfig) -> int:
    if args.command == "kubesec":
        report = gates.load_report(args.report)
        gate_data = gates.kubesec_gate(report, root=args.root, file_path=args.file,
                                       config=config, include_passed=args.passed,
                                       files=_selected_files(args, config.kubesec_extensions))
    elif args.command == "whispers":
        report = gates.load_report(args.report, allow_single_quotes=True)
        gate_data = gates.whispers_gate(report, root=args.root, config=config,
                                        files=_selected_files(args, config.whispers_extensions))
    else:
        report = gates.load_report(args.report)
        gate_data = gates.template_analyzer_gate(report, root=args.root)

    print_gate_data(args.command, gate_data, as_json=args.json)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gate-locator",
        description="Resolve static-analysis findings to line locations in their source files.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    locate_parser = subparsers.add_parser("locate", help="Locate a single selector in a file.")
    locate_parser.add_argument("file", help="The file to search.")
    locate_parser.add_argument("selector", help="A jq-like path, or a literal fragment with --literal.")
    locate_parser.add_argument("--literal", action="store_true",
                               help="Search for the first token of the selector anywhere in a line.")

    kubesec_parser = subparsers.add_parser("kubesec", help="Locate the items of a kubesec report.")
    kubesec_parser.add_argument("report", help="Path to the kubesec JSON report.")
    kubesec_parser.add_argument("--file", default=None,
                                help="Manifest the report was produced for (overrides fileName).")
    kubesec_parser.add_argument("--passed", action="store_true", help="Also locate passed checks.")

    whispers_parser = subparsers.add_parser("whispers", help="Locate the secrets of a whispers report.")
    whispers_parser.add_argument("report", help="Path to the whispers JSON report.")

    sarif_parser = subparsers.add_parser("template-analyzer", help="List the results of a SARIF log.")
    sarif_parser.add_argument("report", help="Path to the SARIF log.")

    for gate_parser in (kubesec_parser, whispers_parser, sarif_parser):
        gate_parser.add_argument("--root", "-r", default=None,
                                 help="Directory that relative file names are resolved against.")
        gate_parser.add_argument("--json", action="store_true", help="Print results as JSON.")

    for gate_parser in (kubesec_parser, whispers_parser):
        gate_parser.add_argument("--scan", action="append", default=None, metavar="PATH",
                                 help="Only report files found under this directory (repeatable). "
                                      "Files are filtered by the extensions configured for the gate.")
        gate_parser.add_argument("--saved", action="append", default=None, metavar="FILE",
                                 help="Only report this file (repeatable). Replaces the --scan walk.")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = LocatorConfig.from_env()

    try:
        if args.command == "locate":
            return _locate(args, config)
        return _run_gate(args, config)
    except (ValueError, OSError) as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())

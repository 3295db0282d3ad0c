"""CLI entry point for netconductor."""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.config import get_config
from .core.exceptions import NetConductorError
from .core.utils import setup_logging
from .output import diff_rows, export_csv, export_json, load_json
from .store import TopologyStore, open_store

console = Console()


def print_error(message: str) -> None:
    """Print error message in red."""
    console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print success message in green."""
    console.print(f"[green]✓[/green] {escape(message)}")


def print_warning(message: str) -> None:
    """Print warning message in yellow."""
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def _store(ctx: click.Context) -> TopologyStore:
    if "store" not in ctx.obj:
        ctx.obj["store"] = open_store(ctx.obj["config"].store)
    return ctx.obj["store"]


def _save(data: dict | list, output: str | None) -> None:
    if output:
        path = export_json(data, output)
        print_success(f"Results saved to {path}")


@click.group()
@click.version_option(version=__version__, prog_name="netconductor")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--backend",
    type=click.Choice(["file", "rest"]),
    help="Topology store backend (default: config)",
)
@click.option(
    "--store-dir",
    type=click.Path(file_okay=False),
    help="Root directory of the file topology store",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, backend: str | None, store_dir: str | None) -> None:
    """netconductor - merge, diff, patch and sample multi-layer network topologies."""
    ctx.ensure_object(dict)
    config = get_config()
    config.verbose = verbose
    if backend:
        config.store.backend = backend
    if store_dir:
        config.store.backend = "file"
        config.store.root_dir = Path(store_dir)
    setup_logging("debug" if verbose else config.log_level)
    ctx.obj["config"] = config


@main.command()
@click.argument("network")
@click.argument("snapshot")
@click.option("--layer", help="Layer to partition (default: every layer)")
@click.option("--output", "-o", type=click.Path(), help="Output file (JSON)")
@click.pass_context
def subsets(
    ctx: click.Context, network: str, snapshot: str, layer: str | None, output: str | None
) -> None:
    """Show network sets (connected node groups) of a snapshot."""
    from .conductor import network_sets

    try:
        results = network_sets(_store(ctx), network, snapshot, layer)
    except NetConductorError as e:
        print_error(str(e))
        sys.exit(1)

    for result in results:
        table = Table(title=f"{network}/{snapshot} {result.network} ({len(result.node_sets)} sets)")
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Size", style="green", justify="right")
        table.add_column("Nodes", style="yellow")
        for i, row in enumerate(result.to_dict()["network_sets"], start=1):
            table.add_row(str(i), str(len(row)), ", ".join(row))
        console.print(table)

    _save([r.to_dict() for r in results], output)


@main.command("subsets-diff")
@click.argument("network")
@click.argument("snapshot")
@click.option("--min-score", type=int, help="Drop results scoring below this")
@click.option("--layer", help="Layer to compare (default: config)")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "csv"]),
    default="json",
    help="Output file format",
)
@click.option("--output", "-o", type=click.Path(), help="Output file")
@click.pass_context
def subsets_diff(
    ctx: click.Context,
    network: str,
    snapshot: str,
    min_score: int | None,
    layer: str | None,
    output_format: str,
    output: str | None,
) -> None:
    """Score network-set changes of logical snapshots against their physical snapshot."""
    from .conductor import score_snapshot_patterns

    try:
        diffs = score_snapshot_patterns(_store(ctx), network, snapshot, min_score, layer)
    except NetConductorError as e:
        print_error(str(e))
        sys.exit(1)

    if not diffs:
        console.print("[yellow]No snapshot patterns to compare.[/yellow]")
        return

    table = Table(title=f"Network Sets Diff of {network}/{snapshot} ({len(diffs)})")
    table.add_column("Target Snapshot", style="cyan")
    table.add_column("Score", style="red", justify="right")
    table.add_column("Separated", style="yellow", justify="right")
    table.add_column("Merged", style="magenta", justify="right")
    for diff in diffs:
        table.add_row(
            diff.target_snapshot,
            str(diff.score),
            str(len(diff.separated_sets)),
            str(len(diff.merged_sets)),
        )
    console.print(table)

    if output:
        data = [d.to_dict() for d in diffs]
        path = export_csv(diff_rows(data), output) if output_format == "csv" else export_json(data, output)
        print_success(f"Results saved to {path}")


@main.command()
@click.argument("network")
@click.argument("snapshot")
@click.argument("ext_topology", type=click.Path(exists=True, dir_okay=False))
@click.option("--overwrite/--no-overwrite", default=True, help="Write the result back to the store")
@click.option("--output", "-o", type=click.Path(), help="Output file (JSON)")
@click.pass_context
def splice(
    ctx: click.Context,
    network: str,
    snapshot: str,
    ext_topology: str,
    overwrite: bool,
    output: str | None,
) -> None:
    """Splice an external (eBGP peer) topology into a snapshot."""
    from .conductor import splice as splice_snapshot

    try:
        ext_data = load_json(ext_topology)
        spliced = splice_snapshot(_store(ctx), network, snapshot, ext_data, overwrite=overwrite)
    except NetConductorError as e:
        print_error(str(e))
        sys.exit(1)

    layers = [nw["network-id"] for nw in spliced["ietf-network:networks"]["network"]]
    console.print(Panel(", ".join(layers), title=f"Spliced {network}/{snapshot}"))
    if overwrite:
        print_success(f"Saved to {network}/{snapshot}")
    _save(spliced, output)


@main.command("patch-policies")
@click.argument("network")
@click.argument("snapshot")
@click.argument("patch_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--layer", default="bgp_proc", help="Target layer (default: bgp_proc)")
@click.option("--output", "-o", type=click.Path(), help="Output file (JSON)")
@click.pass_context
def patch_policies(
    ctx: click.Context,
    network: str,
    snapshot: str,
    patch_file: str,
    layer: str,
    output: str | None,
) -> None:
    """Replace BGP policy groups of nodes from a node-patch file."""
    from .conductor import patch_policies as patch_snapshot

    try:
        node_patches = load_json(patch_file)
        if isinstance(node_patches, dict):
            node_patches = node_patches.get("node", [])
        patched = patch_snapshot(_store(ctx), network, snapshot, layer, node_patches)
    except NetConductorError as e:
        print_error(str(e))
        sys.exit(1)

    print_success(f"Patched {len(node_patches)} node(s) of {network}/{snapshot} [{layer}]")
    _save(patched, output)


@main.command("detect-preferred")
@click.argument("network")
@click.argument("snapshot")
@click.option("--asn", type=int, required=True, help="External AS number")
@click.option("--node", required=True, help="Internal layer3 node peering to the AS")
@click.option("--interface", required=True, help="Interface of the node peering to the AS")
@click.option("--layer", default="bgp_proc", help="Target layer (default: bgp_proc)")
@click.option("--output", "-o", type=click.Path(), help="Output file (JSON)")
@click.pass_context
def detect_preferred(
    ctx: click.Context,
    network: str,
    snapshot: str,
    asn: int,
    node: str,
    interface: str,
    layer: str,
    output: str | None,
) -> None:
    """Flag the preferred eBGP peer of an external AS."""
    from .conductor import detect_preferred_peer

    try:
        result = detect_preferred_peer(_store(ctx), network, snapshot, layer, asn, node, interface)
    except NetConductorError as e:
        print_error(str(e))
        sys.exit(1)

    preferred = result["preferred"]
    print_success(f"Preferred peer of AS{asn}: {preferred['node']}[{preferred['interface']}]")
    _save(result, output)


@main.command()
@click.argument("network")
@click.argument("snapshot")
@click.argument("usecase")
@click.option("--phase", "phase_number", type=int, help="Phase number (default: config)")
@click.option("--count", "candidate_number", type=int, help="Number of candidates (default: config)")
@click.option("--node", help="Layer3 node to steer traffic at")
@click.option("--interface", help="Interface of the node to steer traffic at")
@click.option(
    "--flow-data",
    type=click.Path(exists=True, dir_okay=False),
    help="Flow data file (JSON list of {source, dest, rate})",
)
@click.option("--output", "-o", type=click.Path(), help="Output file (JSON)")
@click.pass_context
def candidates(
    ctx: click.Context,
    network: str,
    snapshot: str,
    usecase: str,
    phase_number: int | None,
    candidate_number: int | None,
    node: str | None,
    interface: str | None,
    flow_data: str | None,
    output: str | None,
) -> None:
    """Generate candidate topologies for a traffic-engineering use case."""
    from .conductor import generate_candidate_topologies

    if not node and (interface or flow_data):
        raise click.UsageError("--interface and --flow-data need --node")

    opts = None
    if node:
        opts = {"node": node, "interface": interface}

    try:
        if flow_data:
            opts = opts or {}
            opts["flow_data"] = load_json(flow_data)
        summaries = generate_candidate_topologies(
            _store(ctx),
            network,
            snapshot,
            usecase,
            candidate_number=candidate_number,
            phase_number=phase_number,
            phase_candidate_opts=opts,
        )
    except NetConductorError as e:
        print_error(str(e))
        sys.exit(1)

    if not summaries:
        console.print("[yellow]No candidate generated.[/yellow]")
        return

    table = Table(title=f"Candidate Topologies of {network}/{snapshot} ({usecase})")
    table.add_column("Snapshot", style="cyan")
    table.add_column("Condition", style="green")
    table.add_column("Error", style="red")
    for summary in summaries:
        table.add_row(
            summary["snapshot"],
            escape(str(summary["candidate_condition"])),
            escape(summary.get("error", {}).get("message", "-")),
        )
    console.print(table)

    failed = sum(1 for s in summaries if "error" in s)
    if failed:
        print_warning(f"{failed} candidate(s) failed")
    _save(summaries, output)


@main.command()
@click.argument("network")
@click.argument("snapshot")
@click.pass_context
def check(ctx: click.Context, network: str, snapshot: str) -> None:
    """Check support references and link endpoints of a snapshot."""
    from .conductor import check_topology

    try:
        problems = check_topology(_store(ctx), network, snapshot)
    except NetConductorError as e:
        print_error(str(e))
        sys.exit(1)

    if not problems:
        print_success(f"{network}/{snapshot}: all references resolve")
        return

    table = Table(title=f"Dangling References in {network}/{snapshot} ({len(problems)})")
    table.add_column("Reference", style="red")
    for problem in problems:
        table.add_row(escape(problem))
    console.print(table)
    sys.exit(1)


if __name__ == "__main__":
    main()

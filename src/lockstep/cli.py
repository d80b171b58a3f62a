from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import List, Optional

import typer

from .actions import Action
from .backends import build_pairs, create_database_engine
from .config import SimulationConfig
from .exceptions import LockstepError
from .scheduler import DEFAULT_WEIGHTS
from .simulator import Simulator

app = typer.Typer(help="lockstep — randomized consistency testing for filesystems")

USERS_OPTION = typer.Option(["left", "right"], "--users", "-u", help="User identities (repeatable).")
OPS_OPTION = typer.Option(100, "--ops", min=0, help="Steady-state actions to apply.")
SEED_OPTION = typer.Option(1, "--seed")
MEAN_LENGTH_OPTION = typer.Option(256, "--mean-file-length", min=0)
DATABASE_URL_OPTION = typer.Option("sqlite+aiosqlite://", "--database-url")
ROOT_OPTION = typer.Option(
    None,
    "--root",
    exists=True,
    file_okay=False,
    help="Host directory for the reference model (default: a temporary directory).",
)
WEIGHT_OPTION = typer.Option(
    None,
    "--weight",
    "-w",
    help="Override one weight as ACTION=WEIGHT, e.g. rm=0.1 (repeatable).",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v")


@app.callback()
def main() -> None:
    """Run simulations against the bundled backends."""


def _parse_weights(overrides: List[str]) -> dict[Action, float]:
    weights = dict(DEFAULT_WEIGHTS)
    for item in overrides:
        name, sep, value = item.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected ACTION=WEIGHT, got {item!r}")
        try:
            weights[Action.parse(name)] = float(value)
        except (LockstepError, ValueError) as e:
            raise typer.BadParameter(str(e)) from e
    return weights


async def _run(users: List[str], config: SimulationConfig, database_url: str, root: Path) -> bool:
    engine = create_database_engine(database_url)
    try:
        pairs = await build_pairs(users, root, engine)
        result = await Simulator(pairs, config).run()
    finally:
        await engine.dispose()

    typer.echo(
        f"applied={result.applied} skipped={result.skipped} "
        f"warnings={result.warnings} failures={len(result.report.failures)}"
    )
    for failure in result.report.failures:
        typer.echo(f"  {failure.kind}: <{failure.user}> {failure.path} {failure.detail}".rstrip())
    typer.echo(f"System verified = {result.verified}")
    return result.verified


@app.command()
def run(
    users: List[str] = USERS_OPTION,
    ops: int = OPS_OPTION,
    seed: int = SEED_OPTION,
    mean_file_length: int = MEAN_LENGTH_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    root: Optional[Path] = ROOT_OPTION,
    weight: Optional[List[str]] = WEIGHT_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Simulate, then verify the database backend against the local-disk reference."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = SimulationConfig(
            op_count=ops,
            seed=seed,
            mean_file_length=mean_file_length,
            weights=_parse_weights(weight or []),
        )
    except LockstepError as e:
        raise typer.BadParameter(str(e)) from e

    if root is not None:
        verified = asyncio.run(_run(users, config, database_url, root))
    else:
        with tempfile.TemporaryDirectory(prefix="lockstep-") as tmp:
            verified = asyncio.run(_run(users, config, database_url, Path(tmp)))
    raise typer.Exit(code=0 if verified else 1)


if __name__ == "__main__":
    app()

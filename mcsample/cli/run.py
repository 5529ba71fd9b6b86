#!/usr/bin/env -S uv run --script

import logging
import pickle
import signal
from importlib.resources import as_file, files
from pathlib import Path
from pprint import pformat

import typer
import yaml

from mcsample.assembly import Chains
from mcsample.config import get_nested_config, load_run_config
from mcsample.driver import CancellationToken, sample
from mcsample.errors import SamplingCancelled, SamplingError
from mcsample.models import get_model
from mcsample.samplers import get_sampler

app = typer.Typer(add_completion=False)


def apply_cli_overrides(
    config: dict,
    n_samples: int | None = None,
    seed: int | None = None,
    sampler: str | None = None,
    model: str | None = None,
    progress: bool | None = None,
) -> dict:
    """Apply command line overrides to a loaded run configuration.

    Selecting a different sampler or model than the configured one drops the
    configured parameters, since they belong to the other component.
    """
    if n_samples is not None:
        config["run"]["n_samples"] = n_samples
    if seed is not None:
        config["run"]["seed"] = seed
    if progress is not None:
        config["run"]["progress"] = progress
    if sampler is not None and sampler != config["sampler"]["name"]:
        config["sampler"] = {"name": sampler, "params": {}}
    if model is not None and model != config["model"]["name"]:
        config["model"] = {"name": model, "params": {}}
    return config


def build_components(config: dict):
    """Create the model and sampler described by a run configuration."""
    model = get_model(
        config["model"]["name"], **(get_nested_config(config, "model", "params") or {})
    )
    sampler = get_sampler(
        config["sampler"]["name"],
        **(get_nested_config(config, "sampler", "params") or {}),
    )
    return model, sampler


def write_chains(chains: Chains, output: Path, output_format: str | None = None) -> Path:
    """Write the draws of a run to ``output`` as CSV or pickle.

    The format is taken from the file suffix (``.pkl``/``.pickle`` for
    pickle), falling back to ``output_format``.
    """
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix in (".pkl", ".pickle"):
        output_format = "pickle"
    output_format = output_format or "csv"

    if output_format == "pickle":
        with open(output, "wb") as f:
            pickle.dump(
                {
                    "draws": chains.to_dataframe(),
                    "info": chains.info,
                    "sampler": chains.sampler_name,
                    "model": chains.model_name,
                },
                f,
            )
    else:
        chains.to_dataframe().to_csv(output)
    return output


log_level_option = typer.Option(
    "WARNING",
    "--log-level",
    "-l",
    help="Set the logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).",
    case_sensitive=False,
    show_default=True,
    rich_help_panel="Logging",
    metavar="LEVEL",
    autocompletion=lambda: ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
)

epilog = "Example: `mcsample-run --config-path run.yaml --output ./draws.csv --n-samples 5000 --seed 1`"


@app.command(epilog=epilog)
def main(
    config_path: Path = typer.Option(None, help="Path to the YAML run configuration."),
    output: Path = typer.Option(
        None, help="Output file (.csv, .pkl or .pickle); overrides output.path."
    ),
    n_samples: int = typer.Option(
        None, "--n-samples", "-n", help="Number of steps to run.", min=0
    ),
    seed: int = typer.Option(None, "--seed", "-s", help="Random seed of the run."),
    sampler: str = typer.Option(None, "--sampler", help="Registered sampler name."),
    model: str = typer.Option(None, "--model", help="Registered model name."),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Disable the progress bar."
    ),
    log_level: str = log_level_option,
):
    """
    Run a sampler against a model and write the draws to disk.
    """
    logging.basicConfig(
        level=log_level.upper(), format="%(asctime)s - %(levelname)s - %(message)s"
    )
    logger = logging.getLogger(__name__)

    try:
        if config_path is None:
            logger.warning("No config path provided, using default configuration.")
            with as_file(files("mcsample.cli") / "config_run.yaml") as default_config:
                config = load_run_config(default_config)
        else:
            config = load_run_config(config_path)
    except (ValueError, yaml.YAMLError) as e:
        logger.error("Could not load run configuration: %s", e)
        raise typer.Exit(code=2)

    config = apply_cli_overrides(
        config,
        n_samples=n_samples,
        seed=seed,
        sampler=sampler,
        model=model,
        progress=False if no_progress else None,
    )
    logger.debug("RUN CONFIG")
    logger.debug(pformat(config))

    if output is None:
        output = get_nested_config(config, "output", "path")
    if output is None:
        logger.error("No output path given (use --output or output.path in the config)")
        raise typer.Exit(code=2)

    try:
        model_obj, sampler_obj = build_components(config)
    except (TypeError, ValueError) as e:
        logger.error("Could not build model/sampler: %s", e)
        raise typer.Exit(code=2)

    # Ctrl-C requests cancellation; the run stops before its next step
    cancel = CancellationToken()
    previous_handler = signal.signal(signal.SIGINT, lambda *_: cancel.cancel())
    try:
        chains = sample(
            model_obj,
            sampler_obj,
            config["run"]["n_samples"],
            seed=config["run"]["seed"],
            progress=config["run"]["progress"],
            cancel=cancel,
            **config["options"],
        )
    except SamplingCancelled as e:
        logger.warning("%s", e)
        raise typer.Exit(code=130)
    except SamplingError as e:
        logger.error("Sampling failed: %s", e)
        raise typer.Exit(code=1)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    path = write_chains(chains, output, get_nested_config(config, "output", "format"))
    logger.info("Wrote %d draws to %s", len(chains), path)
    logger.info("Sampler summary: %s", chains.info)


if __name__ == "__main__":
    app()

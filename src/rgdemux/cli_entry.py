from pathlib import Path
from typing import Optional, Sequence

import click

from .barcodes.decoder import BarcodeDecoder
from .barcodes.dictionary_factory import load_barcode_dictionary
from .barcodes.metrics_io import write_metrics
from .config import DecoderConfig, ReadGroupConfig
from .errors import RGDemuxError
from .informatics.bam_functions import assign_read_groups_in_bam, discarded_output_path
from .logging_utils import setup_logging

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Logging verbosity.",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Also write log messages to this file.",
)
def cli(log_level: str, log_file: Optional[Path]):
    """Command-line interface for rgdemux."""
    setup_logging(level=log_level, log_file=log_file)


def _decoder_config(
    config_path: Optional[Path],
    max_mismatches: Sequence[int],
    min_difference: Sequence[int],
    max_n: Optional[int],
    n_no_mismatch: bool,
) -> DecoderConfig:
    # command-line values override the YAML file
    cfg = DecoderConfig.from_yaml(config_path) if config_path is not None else DecoderConfig()
    if max_mismatches:
        cfg.max_mismatches = list(max_mismatches)
    if min_difference:
        cfg.min_difference_with_second = list(min_difference)
    if max_n is not None:
        cfg.max_n = max_n
    if n_no_mismatch:
        cfg.n_as_mismatch = False
    cfg.validate()
    return cfg


def _barcode_option(f):
    return click.option(
        "--barcodes",
        "-b",
        "barcode_file",
        required=True,
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Whitespace-delimited barcode file: sample, library, barcode(s); no header.",
    )(f)


def _read_group_options(f):
    f = click.option("--platform-unit", default=None, help="Platform unit for the read groups (PU).")(f)
    f = click.option("--platform", default=None, help="Sequencing platform for the read groups (PL).")(f)
    f = click.option("--run-id", default=None, help="Run id prefixed to every read group id.")(f)
    return f


####### Assign read groups ###########
@cli.command()
@click.argument("input_bam", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_bam", type=click.Path(dir_okay=False, path_type=Path))
@_barcode_option
@_read_group_options
@click.option(
    "--maximum-mismatches",
    "-M",
    "max_mismatches",
    type=int,
    multiple=True,
    help="Maximum mismatches per index. Give once for all indexes, or once per index.",
)
@click.option(
    "--minimum-distance",
    "-d",
    "min_difference",
    type=int,
    multiple=True,
    help="Minimum difference in mismatches with the second best barcode. Once, or once per index.",
)
@click.option("--maximum-N", "max_n", type=int, default=None, help="Maximum number of Ns in a barcode.")
@click.option("--n-no-mismatch", is_flag=True, help="Do not count Ns as mismatches.")
@click.option("--barcodes-in-name", is_flag=True, help="Read raw barcodes from the read names.")
@click.option(
    "--keep-discarded",
    is_flag=True,
    help="Write unassigned reads to OUTPUT_BAM with a _discarded suffix instead of dropping them.",
)
@click.option(
    "--metrics",
    "metrics_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the decoder metrics to this file.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file with decoder thresholds. Command-line options take precedence.",
)
@click.option("--progress/--no-progress", default=False, help="Show a progress bar.")
def assign(
    input_bam: Path,
    output_bam: Path,
    barcode_file: Path,
    run_id: Optional[str],
    platform: Optional[str],
    platform_unit: Optional[str],
    max_mismatches: Sequence[int],
    min_difference: Sequence[int],
    max_n: Optional[int],
    n_no_mismatch: bool,
    barcodes_in_name: bool,
    keep_discarded: bool,
    metrics_path: Optional[Path],
    config_path: Optional[Path],
    progress: bool,
):
    """Assign the reads of INPUT_BAM to read groups and write OUTPUT_BAM."""
    try:
        read_groups = ReadGroupConfig(run_id=run_id, platform=platform, platform_unit=platform_unit)
        dictionary = load_barcode_dictionary(barcode_file, read_groups)
        cfg = _decoder_config(config_path, max_mismatches, min_difference, max_n, n_no_mismatch)
        decoder = BarcodeDecoder.from_config(dictionary, cfg)
        summary = assign_read_groups_in_bam(
            input_bam,
            output_bam,
            decoder,
            discarded_bam=discarded_output_path(output_bam) if keep_discarded else None,
            barcodes_in_name=barcodes_in_name,
            progress=progress,
        )
        if metrics_path is not None:
            write_metrics(decoder.metrics(), metrics_path)
    except RGDemuxError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Wrote {summary['written']} of {summary['records']} records to {output_bam}")
    for read_group_id, n in sorted(summary["read_groups"].items()):
        click.echo(f"  {read_group_id}\t{n}")
    click.echo(f"  unassigned\t{summary['discarded']}")
##########################################


####### Show a barcode dictionary ###########
@cli.command()
@_barcode_option
@_read_group_options
def dictionary(
    barcode_file: Path,
    run_id: Optional[str],
    platform: Optional[str],
    platform_unit: Optional[str],
):
    """Print the barcode dictionary loaded from a barcode file."""
    try:
        read_groups = ReadGroupConfig(run_id=run_id, platform=platform, platform_unit=platform_unit)
        loaded = load_barcode_dictionary(barcode_file, read_groups)
    except RGDemuxError as e:
        raise click.ClickException(str(e)) from e
    click.echo(loaded.to_dataframe().to_csv(sep="\t", index=False), nl=False)
##########################################

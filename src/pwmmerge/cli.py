import argparse
import logging
import os
import sys

import numpy as np

from pwmmerge.api import run_merge
from pwmmerge.config import create_merge_config
from pwmmerge.io import read_motifs, write_motifs
from pwmmerge.policies import combiners, gap_penalties
from pwmmerge.report import format_distance_report
from pwmmerge.tree import LINKAGE_MODES


def setup_logging(verbose: bool):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    if verbose:
        logging.getLogger("numba").setLevel(logging.WARNING)


def create_arg_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pwmmerge",
        description="Merge similar PWMs into consensus motifs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
 Examples:
   # Iterative merging with default settings
   pwmmerge motifs.meme -o merged.meme

   # Tree merging with a stricter threshold, saving the linkage matrix
   pwmmerge motifs.meme -m tree -t 0.1 --tree-out tree.tsv

   # Pairwise distances only
   pwmmerge motifs.meme --dump-dist --gap-mode linear --avg-mode l2
         """,
    )
    parser.add_argument("input", metavar="INPUT", help="Motif file (MEME, or FASTA-style matrices for .fa/.fasta).")

    io_group = parser.add_argument_group("Input/Output Options")
    io_group.add_argument(
        "-o",
        "--output",
        default="merged_output.meme",
        metavar="OUTPUT",
        help="Output motif file; .fa/.fasta writes FASTA-style matrices, anything else MEME. (default: %(default)s)",
    )
    io_group.add_argument(
        "-p",
        "--prefix",
        default="merged",
        metavar="PREFIX",
        help="Prefix added to the name of merged motifs in tree mode. (default: %(default)s)",
    )
    io_group.add_argument(
        "--dump-dist",
        action="store_true",
        help="Print pairwise distances of the original motifs without performing any merging.",
    )
    io_group.add_argument(
        "--tree-out",
        metavar="PATH",
        help="Save the merge tree as a tab-separated scipy linkage matrix (tree mode only).",
    )

    merge_group = parser.add_argument_group("Merging Options")
    merge_group.add_argument(
        "-m",
        "--mode",
        choices=["iter", "iterative", "tree"],
        default="iter",
        help="Merging algorithm. (default: %(default)s)",
    )
    merge_group.add_argument(
        "-t",
        "--thres",
        type=float,
        default=0.2,
        metavar="THRESHOLD",
        help="Two motifs whose distance does not exceed the threshold are merged. (default: %(default)s)",
    )
    merge_group.add_argument(
        "--linkage",
        choices=list(LINKAGE_MODES),
        default="representative",
        help=(
            "Tree linkage: distance between combined representative matrices, or "
            "size-weighted average of leaf distances. (default: %(default)s)"
        ),
    )
    merge_group.add_argument(
        "--weighting",
        choices=["size", "simple"],
        default="size",
        help="Weight merged matrices by the number of motifs they contain, or equally. (default: %(default)s)",
    )

    align_group = parser.add_argument_group("Alignment Options")
    align_group.add_argument(
        "-g",
        "--gap",
        type=float,
        default=0.05,
        metavar="GAP_PENALTY",
        help="Gap penalty base constant. (default: %(default)s)",
    )
    align_group.add_argument(
        "--gap-mode",
        "--gap_mode",
        choices=gap_penalties.available(),
        default="exp",
        help="Gap penalty growth. (default: %(default)s)",
    )
    align_group.add_argument(
        "--avg-mode",
        "--avg_mode",
        choices=combiners.available(),
        default="l1",
        help="Function combining position-wise divergences. (default: %(default)s)",
    )
    align_group.add_argument(
        "--revcomp",
        action="store_true",
        help="Also align the reverse complement of each motif.",
    )

    technical_group = parser.add_argument_group("Technical Options")
    technical_group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging for detailed execution tracking.",
    )
    technical_group.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of parallel jobs for the initial distance matrix. -1 uses all CPU cores. (default: %(default)s)",
    )

    return parser


def validate_inputs(args) -> None:
    """Validate input files and parameters."""
    logger = logging.getLogger(__name__)
    if not os.path.exists(args.input):
        logger.error(f"Motif file not found: {args.input}")
        sys.exit(1)
    if args.tree_out and args.mode != "tree":
        logger.warning("--tree-out is only used in tree mode; ignoring it")


def main_cli(argv=None):
    """Main CLI entry point."""
    parser = create_arg_parser()

    if argv is None and len(sys.argv) == 1:
        parser.print_help(sys.stderr)
        sys.exit(1)

    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    validate_inputs(args)
    logger = logging.getLogger(__name__)

    try:
        config = create_merge_config(
            mode=args.mode,
            threshold=args.thres,
            gap_mode=args.gap_mode,
            gap=args.gap,
            avg_mode=args.avg_mode,
            prefix=args.prefix,
            dump_dist=args.dump_dist,
            linkage=args.linkage,
            weighting=args.weighting,
            revcomp=args.revcomp,
            n_jobs=args.jobs,
        )

        motifs = read_motifs(args.input)

        if config.dump_dist:
            outcome = run_merge(motifs, config)
            rows = outcome.distances.itertuples(index=False, name=None)
            sys.stdout.write(format_distance_report(rows))
            return

        logger.info(f"Merging Mode: {config.mode}")
        logger.info(f"Read {len(motifs)} motifs")

        outcome = run_merge(motifs, config)

        if outcome.dendrogram is not None and args.tree_out:
            np.savetxt(args.tree_out, outcome.dendrogram.to_linkage_matrix(), fmt="%.10g", delimiter="\t")
            logger.info(f"Saved merge tree to {args.tree_out}")

        logger.info(f"Write {len(outcome.motifs)} motifs")
        write_motifs(outcome.motifs, args.output)

    except Exception as e:
        logger.error(f"ERROR: Merging failed: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main_cli()

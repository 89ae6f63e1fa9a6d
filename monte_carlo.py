#!/usr/bin/env python3
"""
Monte Carlo driver for the reaction engine

Examples:
    python monte_carlo.py --decay 2224 --events 1000
    python monte_carlo.py --collide 211 2212 --sqrt-s 1.232 --events 500 --seed 42 --output pip.csv
"""

import argparse
import csv
import logging

from db import get_log
from reactions.hadronization import default_hadronizer
from reactions.particles import ParticleType
from reactions.simulation import simulate_collisions, simulate_decays


def resolve_pdg(token: str) -> int:
    """PDG code from an integer or a registered species name (e.g. "Δ⁺⁺")."""
    for ptype in ParticleType.list_all():
        if str(ptype.pdgcode) == token or ptype.name.lower() == token.lower():
            return ptype.pdgcode
    raise argparse.ArgumentTypeError(f"Unknown particle '{token}'")


def print_log_stats(log):
    stats = log.stats()
    print("\n📊 Interaction Log Statistics")
    print("=" * 60)
    print(f"Total interactions stored    : {stats['total_interactions']}")
    print(f"Average sqrt(s)              : {stats['average_sqrt_s']:.4f} GeV")
    print(f"Conservation rate            : {stats['conservation_rate']:.2%}")
    print("\nInteractions by process type:")
    for ptype, count in stats["by_process_type"].items():
        print(f"  • {ptype:20s}: {count:6d}")
    print("=" * 60 + "\n")


def export_interactions_to_csv(log, interaction_ids, filename):
    """Export the outgoing particles of selected interactions to CSV."""
    rows_written = 0
    with open(filename, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["interaction_id", "process_type", "particle_id", "pdg", "E", "px", "py", "pz"])
        for iid in interaction_ids:
            interaction = log.parse_interaction(iid)
            if interaction is None:
                continue
            for p in interaction["outgoing"]:
                writer.writerow([iid, interaction["process_type"], p["id"], p["pdg"],
                                 *p["momentum"].to_tuple()])
                rows_written += 1
    print(f"📄 Exported {len(interaction_ids)} interactions ({rows_written} rows) to {filename}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Reaction engine Monte Carlo driver",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  python monte_carlo.py --decay 2224 --events 1000
  python monte_carlo.py --decay ω --events 500 --seed 42
  python monte_carlo.py --collide 2212 2212 --sqrt-s 2.5 --events 100 --pauli --output pp.csv"""
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--decay", type=resolve_pdg, metavar="PARTICLE", help="Decaying species (PDG code or name)")
    mode.add_argument("--collide", type=resolve_pdg, nargs=2, metavar="PARTICLE", help="Colliding pair")
    parser.add_argument("--sqrt-s", type=float, default=None, help="Collision energy in GeV (required with --collide)")
    parser.add_argument("--events", type=int, default=10, help="Number of events (default 10)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (optional)")
    parser.add_argument("--elastic", type=float, default=10.0, help="Elastic cross section in mb (default 10)")
    parser.add_argument("--string", type=float, default=0.0, help="String-excitation cross section in mb (default 0)")
    parser.add_argument("--pauli", action="store_true", help="Apply Pauli blocking to outgoing fermions")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--stats", action="store_true", help="Print interaction log statistics after generation")
    parser.add_argument("--output", type=str, help="Export generated interactions to CSV file")
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    if args.collide and args.sqrt_s is None:
        parser.error("--collide requires --sqrt-s")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.verbose:
        logging.getLogger("reactions.action").setLevel(logging.WARNING)

    log = get_log()

    print("\n" + "=" * 60)
    print("🔥 Reaction Engine Monte Carlo")
    print("=" * 60)
    if args.decay:
        print(f"Decaying species  : {ParticleType.find(args.decay).name}")
    else:
        names = " + ".join(ParticleType.find(p).name for p in args.collide)
        print(f"Collision         : {names} at sqrt(s) = {args.sqrt_s} GeV")
    print(f"Number of Events  : {args.events}")
    print(f"Random Seed       : {args.seed if args.seed is not None else 'None'}")
    if args.output:
        print(f"CSV Output        : {args.output}")
    print("=" * 60 + "\n")

    if args.decay:
        results = simulate_decays(args.decay, args.events, seed=args.seed, log=log)
    else:
        results = simulate_collisions(
            args.collide[0], args.collide[1], args.sqrt_s, args.events,
            seed=args.seed,
            elastic_xs=args.elastic,
            string_xs=args.string,
            hadronizer=default_hadronizer() if args.string > 0 else None,
            pauli=args.pauli,
            log=log,
        )

    print("\n" + "=" * 60)
    print("✅ Generation Complete")
    print("=" * 60)
    print(f"Performed         : {results['success']}/{results['total']}")
    print(f"Failed            : {results['failed']}")
    print(f"Discarded         : {results['discarded']}")
    print(f"Success rate      : {results['success_rate']:.2%}")
    print("\nChannels:")
    for label, count in sorted(results["channels"].items(), key=lambda kv: -kv[1]):
        print(f"  • {label:20s}: {count:6d}")
    print("=" * 60 + "\n")

    if args.output:
        export_interactions_to_csv(log, results["interaction_ids"], args.output)

    if args.stats and results["success"] > 0:
        print_log_stats(log)


if __name__ == "__main__":
    main()

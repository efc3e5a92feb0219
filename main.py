"""
Crystal Ball: tournament probability engine
============================================
Rebuilds Elo ratings from completed games, propagates series probabilities
through the bracket, and refreshes the probability snapshots of every
crystal-ball question.

Run:
    python main.py rebuild-ratings --tournament worlds-2025
    python main.py outcome --tournament worlds-2025 --sims 10000
    python main.py refresh --tournament worlds-2025
    python main.py series --rating-a 1600 --rating-b 1500 --best-of 5 --wins-a 1
    python main.py remaining

The database comes from CRYSTAL_DATABASE_URL (or DATABASE_URL); the
remaining command needs LOLESPORTS_API_KEY.
"""

import argparse
import sys

from crystal.predictions.matchup import matchup_prob
from crystal.schedule.remaining import WORLDS_2025, fetch_remaining_breakdown
from crystal.service import Engine
from crystal.utils.config import CrystalConfig
from crystal.utils.errors import CrystalError, NotFoundError
from crystal.utils.logging import get_logger, setup_logging
from crystal.utils.metrics import history_frame

log = get_logger("main")


# ── Helpers ──────────────────────────────────────────────────────────────────

def bar(p: float, width: int = 20) -> str:
    filled = round(p * width)
    return "█" * filled + "░" * (width - filled)

def fmt_pct(p: float) -> str:
    return f"{p * 100:5.1f}%"


def _tournament(engine: Engine, slug: str):
    tournament = engine.schedule.get_tournament_by_slug(slug)
    if tournament is None:
        raise NotFoundError("tournament", slug)
    return tournament


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_rebuild(engine: Engine, args) -> None:
    tournament = _tournament(engine, args.tournament)
    result = engine.rebuild_ratings(tournament.id)
    print(
        f"Rebuilt Elo for {args.tournament}: {result.teams_updated} teams, "
        f"{result.matches_processed} matches processed"
    )

    m = result.metrics
    if m:
        print("\n" + "=" * 60)
        print("REPLAY EVALUATION  (pregame probabilities)")
        print("=" * 60)
        print(f"  Games evaluated : {m['n_games']:,}")
        print(f"  Log  Loss  — Elo : {m['log_loss']:.4f}   Baseline (50/50): "
              f"{m['baseline_log_loss']:.4f}")
        print(f"  Brier Score — Elo : {m['brier_score']:.4f}   Baseline (50/50): "
              f"{m['baseline_brier_score']:.4f}")

    if args.history_csv:
        history_frame(result.history).to_csv(args.history_csv, index=False)
        print(f"\nReplay history written to {args.history_csv}")


def cmd_outcome(engine: Engine, args) -> None:
    tournament = _tournament(engine, args.tournament)
    outcome = engine.tournament_outcome(tournament.id)
    ranked = outcome.ranked()
    slugs = engine.team_slugs([t for t, _ in ranked])

    sims = engine.simulate_tournament_outcome(tournament.id, n_sims=args.sims) if args.sims else None

    print("=" * 60)
    print(f"CHAMPION ODDS — {tournament.name}")
    print("=" * 60)
    if not ranked:
        print("  No data yet.")
        return
    if sims is None:
        print(f"{'Rank':<5} {'Team':<28} {'Title %':>7}")
    else:
        print(f"{'Rank':<5} {'Team':<28} {'Title %':>7} {'Sim %':>7}")
    print("-" * 60)
    for rank, (team_id, p) in enumerate(ranked, start=1):
        name = slugs.get(team_id, str(team_id))
        if sims is None:
            print(f"{rank:<5} {name[:28]:<28} {fmt_pct(p):>7} {bar(p)}")
        else:
            print(f"{rank:<5} {name[:28]:<28} {fmt_pct(p):>7} {fmt_pct(sims.get(team_id, 0.0)):>7} {bar(p)}")
    if sims is not None:
        print(f"\n  Sim % from {args.sims:,} Monte Carlo runs of the same bracket.")


def cmd_remaining(engine, args) -> None:
    fmt = WORLDS_2025
    r = fetch_remaining_breakdown(fmt, args.config.lolesports_api_key)
    swiss, knockouts = r["swiss"], r["knockouts"]

    print("=" * 60)
    print("MAPS REMAINING — Worlds 2025")
    print("=" * 60)
    print(f"  Swiss     : {swiss['min']:>3} - {swiss['max']:<3} maps   "
          f"({swiss['details']['bo1_left']} Bo1, {swiss['details']['bo3_series_left']} Bo3 series left)")
    print(f"  Knockouts : {knockouts['min']:>3} - {knockouts['max']:<3} maps   "
          f"({knockouts['details']['series_left']} Bo5 series left)")
    print("-" * 60)
    print(f"  Total     : {r['total']['min']:>3} - {r['total']['max']:<3} maps   "
          f"({r['series_left']['total']} series left)")
    print(f"  Played    : {r['played']['maps']} maps over {r['played']['series']} series")


def cmd_refresh(engine: Engine, args) -> None:
    written = engine.refresh_tournament(args.tournament)
    for slug, n in written.items():
        print(f"Refreshed probabilities for question {slug} ({n} answers)")


def cmd_series(engine, args) -> None:
    m = matchup_prob(args.rating_a, args.rating_b, args.best_of, args.wins_a, args.wins_b)
    print(f"  Bo{args.best_of} at {m['score']}  (Elo diff = {m['rating_diff']:+.0f})")
    print(f"  game   {fmt_pct(m['game_prob_a'])}")
    print(f"  series {fmt_pct(m['series_prob_a'])} {bar(m['series_prob_a'])} "
          f"{fmt_pct(m['series_prob_b'])}")


# ── Main ─────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crystal Ball probability engine")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("rebuild-ratings", help="replay completed games into Elo ratings")
    p.add_argument("--tournament", required=True)
    p.add_argument("--history-csv", default=None, help="write the replay history here")
    p.set_defaults(func=cmd_rebuild, needs_db=True)

    p = sub.add_parser("outcome", help="print champion probabilities")
    p.add_argument("--tournament", required=True)
    p.add_argument("--sims", type=int, default=0, help="also run N Monte Carlo simulations")
    p.set_defaults(func=cmd_outcome, needs_db=True)

    p = sub.add_parser("refresh", help="recompute and snapshot every question")
    p.add_argument("--tournament", required=True)
    p.set_defaults(func=cmd_refresh, needs_db=True)

    p = sub.add_parser("series", help="series win probability from two ratings")
    p.add_argument("--rating-a", type=float, required=True)
    p.add_argument("--rating-b", type=float, required=True)
    p.add_argument("--best-of", type=int, default=5)
    p.add_argument("--wins-a", type=int, default=0)
    p.add_argument("--wins-b", type=int, default=0)
    p.set_defaults(func=cmd_series, needs_db=False)

    p = sub.add_parser("remaining", help="maps left at Worlds 2025 from the LoL Esports schedule")
    p.set_defaults(func=cmd_remaining, needs_db=False)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, format_style="simple")

    try:
        args.config = CrystalConfig.from_env()
        engine = Engine.from_config(args.config) if args.needs_db else None
        args.func(engine, args)
    except (CrystalError, ValueError) as exc:
        log.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

import argparse
import datetime
import json
import sys

from date_slicer.core.dates import DataBounds, day_end, day_start, parse_date_value
from date_slicer.core.logging_setup import setup_logging
from date_slicer.core.presets import PRESET_LABELS, PresetId, coerce_preset, resolve
from date_slicer.core.settings import load_settings
from date_slicer.scenario import ScenarioRunner, load_scenario


def _parse(value, what):
    parsed = parse_date_value(value)
    if parsed is None:
        raise ValueError(f"{what} '{value}' is not a recognised date")
    return parsed


def _print_preset(args) -> None:
    now = _parse(args.now, "--now") if args.now else datetime.datetime.now()
    bounds = None
    if args.min or args.max:
        if not (args.min and args.max):
            raise ValueError("--min and --max must be given together")
        bounds = DataBounds(day_start(_parse(args.min, "--min")), day_end(_parse(args.max, "--max")))

    preset = coerce_preset(args.preset)
    rng = resolve(preset, now, bounds)

    print(f"\n==========================================")
    print(f"  PRESET {PRESET_LABELS[preset].upper()} ({preset})")
    print(f"==========================================")
    print(f"{'Now':<10} | {now.isoformat(timespec='seconds'):>26}")
    if bounds is not None:
        print(f"{'Bounds':<10} | {bounds.min_date.date().isoformat():>12} .. {bounds.max_date.date().isoformat()}")
    if rng is None:
        print(f"{'Range':<10} | {'(none: defer to data bounds)':>26}")
    else:
        print(f"{'From':<10} | {rng.start.isoformat(timespec='milliseconds'):>26}")
        print(f"{'To':<10} | {rng.end.isoformat(timespec='milliseconds'):>26}")
        print(f"{'Days':<10} | {rng.days():>26}")
    print(f"==========================================")


def _replay(args) -> None:
    scenario = load_scenario(args.scenario)
    runner = ScenarioRunner(scenario, timing=load_settings().timing)
    results = runner.run()

    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        return

    print(f"\n{'#':>3} | {'Action':<15} | {'Rule':<16} | {'Phase':<22} | {'W':<1} | Selection")
    print("-" * 100)
    for r in results:
        sel = f"{r.selection['from'][:10]} .. {r.selection['to'][:10]}" if r.selection else ""
        extra = r.message or (json.dumps(r.blob) if r.blob is not None else "")
        print(
            f"{r.index:>3} | {r.action:<15} | {r.rule or '':<16} | {r.phase or '':<22} | "
            f"{'*' if r.wrote else ' '} | {sel}{(' ' + extra) if extra else ''}"
        )


def main():
    """
    Command-line entry point: resolve a preset for a given clock and bounds, or
    replay a tick scenario through a slicer and an in-memory filter bus.
    """
    parser = argparse.ArgumentParser(description="Date slicer preset resolver and scenario replay",
                                     formatter_class=argparse.RawTextHelpFormatter)

    preset_group = parser.add_argument_group('Preset Arguments')
    preset_group.add_argument("--preset", type=str, choices=[p.value for p in PresetId],
                              help="Preset to resolve (e.g. 'last7Days')")
    preset_group.add_argument("--now", type=str, help="Clock to resolve against (default: now)")
    preset_group.add_argument("--min", type=str, help="Earliest date in the data (YYYY-MM-DD)")
    preset_group.add_argument("--max", type=str, help="Latest date in the data (YYYY-MM-DD)")

    scenario_group = parser.add_argument_group('Scenario Arguments')
    scenario_group.add_argument("--scenario", type=str, help="Path to a scenario JSON file")
    scenario_group.add_argument("--json", action="store_true", help="Print step results as JSON")

    common_group = parser.add_argument_group('Common Arguments')
    common_group.add_argument("--log-level", type=str, default="WARNING", help="Console log level (default: WARNING)")

    args = parser.parse_args()
    if not args.preset and not args.scenario:
        parser.error("one of --preset or --scenario is required")

    lg = load_settings().logging
    setup_logging(lg.app_name, lg.log_dir, args.log_level, lg.file_level)

    try:
        if args.scenario:
            _replay(args)
        else:
            _print_preset(args)
    except (ValueError, TypeError, OSError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    # python main.py --preset last7Days --now 2024-06-01 --min 2024-01-01 --max 2024-01-31
    # python main.py --scenario scenarios/clear_all.json
    main()

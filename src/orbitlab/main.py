#!/usr/bin/env python3
"""
===============================================================================
ORBITLAB - COMMAND LINE ENTRY POINT
===============================================================================
USAGE:
    orbitlab hohmann 6778 42164                    # LEO -> GEO around Earth
    orbitlab bielliptic 7000 105000 200000         # three-burn transfer
    orbitlab windows mars --count 3                # next Mars departures
    orbitlab flyby jupiter 5640 --altitude 200000  # gravity assist
    orbitlab elements 7000e3 0 0 0 7546 0          # state -> elements
    orbitlab passes --lat 25.76 --lon -80.19 --a 6790 --inc 51.6 --norad 25544

Results are printed as tables.  Errors in the inputs exit with status 2.
===============================================================================
"""

import argparse
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

import pandas as pd

from orbitlab import api
from orbitlab.core.config import load_config
from orbitlab.core.exceptions import OrbitalMechanicsError

logger = logging.getLogger('orbitlab')


def _parse_date(text: Optional[str]) -> datetime:
    if text is None:
        return datetime.now(timezone.utc).replace(microsecond=0)
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _print(df: pd.DataFrame) -> None:
    if df.empty:
        print("(no results)")
    else:
        print(df.to_string(index=False))


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def _cmd_hohmann(args, config) -> None:
    transfer = api.hohmann_transfer(args.r1_km, args.r2_km, args.body)
    _print(api.transfer_table(transfer))
    print(f"Transfer time: {transfer.transfer_time_hours:.2f} h")


def _cmd_bielliptic(args, config) -> None:
    transfer = api.bi_elliptic_transfer(args.r1_km, args.r2_km, args.rb_km, args.body)
    _print(api.transfer_table(transfer))
    print(f"Transfer time: {transfer.transfer_time / 3600.0:.2f} h")


def _cmd_windows(args, config) -> None:
    windows = api.launch_windows(args.target, _parse_date(args.start), args.count, config)
    _print(api.windows_table(windows))


def _cmd_flyby(args, config) -> None:
    assist = api.gravity_assist(args.body, args.v_inf, args.altitude)
    print(f"Turn angle:      {assist.turn_angle_deg:.3f} deg")
    print(f"Delta-V:         {assist.delta_v:.1f} m/s")
    print(f"Periapsis speed: {assist.periapsis_speed:.1f} m/s")


def _cmd_elements(args, config) -> None:
    elements = api.state_to_elements(
        (args.x, args.y, args.z), (args.vx, args.vy, args.vz),
        epoch=_parse_date(args.epoch),
    )
    _print(api.elements_table(elements))


def _cmd_passes(args, config) -> None:
    start = _parse_date(args.start)
    elements = api.elements_from_degrees(
        args.a, args.ecc, args.inc, args.raan, args.argp, args.mean_anomaly,
        epoch=_parse_date(args.epoch) if args.epoch else start,
    )
    passes = api.predict_passes(
        elements, args.lat, args.lon, args.alt, start, args.days,
        min_elevation_deg=args.min_elevation, satellite_id=args.norad,
        config=config,
    )
    if args.visible_only:
        passes = [p for p in passes if p.is_visible]
    _print(api.passes_table(passes))


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='orbitlab',
        description='Orbital mechanics for stargazers: transfers, launch windows, '
                    'flybys and satellite passes',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to orbitlab config YAML')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('hohmann', help='Hohmann transfer between circular orbits')
    p.add_argument('r1_km', type=float)
    p.add_argument('r2_km', type=float)
    p.add_argument('--body', default='Earth')
    p.set_defaults(func=_cmd_hohmann)

    p = sub.add_parser('bielliptic', help='Bi-elliptic transfer')
    p.add_argument('r1_km', type=float)
    p.add_argument('r2_km', type=float)
    p.add_argument('rb_km', type=float, help='Intermediate apoapsis radius')
    p.add_argument('--body', default='Earth')
    p.set_defaults(func=_cmd_bielliptic)

    p = sub.add_parser('windows', help='Interplanetary launch windows')
    p.add_argument('target')
    p.add_argument('--count', type=int, default=3)
    p.add_argument('--start', default=None, help='ISO date of first departure')
    p.set_defaults(func=_cmd_windows)

    p = sub.add_parser('flyby', help='Gravity assist turn angle and delta-V')
    p.add_argument('body')
    p.add_argument('v_inf', type=float, help='Hyperbolic excess speed (m/s)')
    p.add_argument('--altitude', type=float, default=200000.0,
                   help='Periapsis altitude (m)')
    p.set_defaults(func=_cmd_flyby)

    p = sub.add_parser('elements', help='Cartesian state (m, m/s) to elements')
    for name in ('x', 'y', 'z', 'vx', 'vy', 'vz'):
        p.add_argument(name, type=float)
    p.add_argument('--epoch', default=None)
    p.set_defaults(func=_cmd_elements)

    p = sub.add_parser('passes', help='Satellite passes over an observer')
    p.add_argument('--lat', type=float, required=True)
    p.add_argument('--lon', type=float, required=True)
    p.add_argument('--alt', type=float, default=0.0, help='Observer altitude (m)')
    p.add_argument('--a', type=float, required=True, help='Semi-major axis (km)')
    p.add_argument('--ecc', type=float, default=0.0)
    p.add_argument('--inc', type=float, required=True, help='Inclination (deg)')
    p.add_argument('--raan', type=float, default=0.0)
    p.add_argument('--argp', type=float, default=0.0)
    p.add_argument('--mean-anomaly', type=float, default=0.0)
    p.add_argument('--epoch', default=None)
    p.add_argument('--start', default=None)
    p.add_argument('--days', type=float, default=1.0)
    p.add_argument('--min-elevation', type=float, default=None)
    p.add_argument('--norad', default='default')
    p.add_argument('--visible-only', action='store_true')
    p.set_defaults(func=_cmd_passes)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point. Parses command line arguments and runs the requested
    subcommand.
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    try:
        config = load_config(args.config)
        args.func(args, config)
    except OrbitalMechanicsError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())

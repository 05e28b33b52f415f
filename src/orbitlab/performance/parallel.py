"""
parallel.py - Process-pool dispatch for independent orbit computations

Pass prediction for a dozen satellites, or launch windows for every planet,
are embarrassingly parallel: each request is a pure function of its inputs
with no shared mutable state.  PassWorkerPool spreads such requests over a
``multiprocessing.Pool`` and hands results back in request order.

Usage
-----
    with PassWorkerPool(num_workers=4) as pool:
        per_satellite = pool.predict_many(requests, observer, start, 3.0)

Outside a ``with`` block each call creates and tears down its own pool.
``terminate()`` kills the workers of an open pool, abandoning outstanding
work.

Everything sent to a worker must be picklable: task functions are module
level, and cancellation events are not forwarded (a worker always runs its
request to completion).
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from multiprocessing import Pool
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from orbitlab.core.config import load_config, section
from orbitlab.dynamics.orbital_elements import OrbitalElements
from orbitlab.guidance.transfer_planner import LaunchWindow, launch_windows
from orbitlab.observation.pass_predictor import (
    ObserverLocation,
    SatellitePass,
    predict_passes,
)

logger = logging.getLogger(__name__)


def _run_task(args: Tuple[Callable, tuple, dict]) -> Any:
    """
    Top-level function for pickling by multiprocessing.Pool.
    Unpacks (func, args, kwargs) and calls func(*args, **kwargs).
    """
    func, f_args, f_kwargs = args
    return func(*f_args, **f_kwargs)


class PassWorkerPool:
    """
    Order-preserving process pool for pass and launch-window requests.

    Parameters
    ----------
    num_workers : int or None
        Number of worker processes.  Defaults to ``parallel.num_workers``
        from the configuration, then ``os.cpu_count()``.
    config : dict or None
        Loaded configuration, forwarded to every task.
    """

    def __init__(self, num_workers: Optional[int] = None,
                 config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else load_config()
        configured = section(self.config, 'parallel').get('num_workers')
        self.num_workers = num_workers or configured or os.cpu_count() or 4
        self._pool = None

    def __enter__(self) -> 'PassWorkerPool':
        self._pool = Pool(processes=self.num_workers)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._pool is not None:
            if exc_type is None:
                self._pool.close()
            else:
                self._pool.terminate()
            self._pool.join()
            self._pool = None

    def terminate(self) -> None:
        """Stop all workers immediately; outstanding tasks are dropped."""
        if self._pool is not None:
            logger.info("Terminating worker pool (%d workers)", self.num_workers)
            self._pool.terminate()
            self._pool.join()
            self._pool = None

    def map(self, func: Callable[..., Any],
            calls: Sequence[Tuple[tuple, dict]]) -> List[Any]:
        """
        Evaluate ``func(*args, **kwargs)`` for each ``(args, kwargs)`` in
        *calls*.  Results are returned in the order of *calls*.
        """
        tasks = [(func, tuple(a), dict(kw)) for a, kw in calls]
        if not tasks:
            return []
        logger.info("Dispatching %d task(s) of %s to %d worker(s)",
                    len(tasks), getattr(func, '__name__', func), self.num_workers)
        if self._pool is not None:
            return self._pool.map(_run_task, tasks)
        with Pool(processes=self.num_workers) as pool:
            results = pool.map(_run_task, tasks)
        return results

    def predict_many(
        self,
        requests: Sequence[Tuple[Union[str, int], OrbitalElements]],
        observer: ObserverLocation,
        from_date: datetime,
        days_ahead: float,
        min_elevation_deg: Optional[float] = None,
    ) -> List[List[SatellitePass]]:
        """One pass list per ``(satellite_id, elements)`` request, in order."""
        calls = [
            ((elements, observer, from_date, days_ahead),
             {'min_elevation_deg': min_elevation_deg,
              'satellite_id': satellite_id,
              'config': self.config})
            for satellite_id, elements in requests
        ]
        return self.map(predict_passes, calls)

    def launch_windows_many(
        self,
        targets: Sequence[str],
        from_date: datetime,
        count: int,
    ) -> List[List[LaunchWindow]]:
        """One window list per target, in order."""
        calls = [((target, from_date, count), {'config': self.config})
                 for target in targets]
        return self.map(launch_windows, calls)

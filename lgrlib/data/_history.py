"""Time-series recording of simulation state for post-processing.

StateHistory records field snapshots during a run via a callback and provides
query APIs for analysis. Nodes and points are addressed by index; after a
remesh the indices refer to the new mesh.

Usage
-----
    from lgrlib.data import StateHistory

    history = StateHistory(fields=['x', 'v', 'p'], record_every=10)
    sim.run(callback=history.callback)

    times, values = history.query_node(3, 'v')
    p = history.query_field_at_time(0.5, 'p')
"""

from typing import Optional, Sequence

import numpy as np


class StateHistory:
    """Records simulation snapshots for post-processing.

    Parameters
    ----------
    fields : sequence of str
        State fields to record (default: ``['x', 'v', 'p']``).
    record_every : int
        Record a snapshot every N steps (default: 1).
    """

    def __init__(
        self,
        fields: Sequence[str] = ('x', 'v', 'p'),
        record_every: int = 1,
    ):
        self.fields = list(fields)
        self.record_every = record_every

        # Storage: list of (time, {field: array}, diagnostics)
        self._snapshots: list[tuple[float, dict, dict]] = []

    @property
    def times(self) -> list[float]:
        """List of recorded times."""
        return [s[0] for s in self._snapshots]

    @property
    def n_snapshots(self) -> int:
        return len(self._snapshots)

    def callback(self, step, t, state, diagnostics=None):
        """Callback for :meth:`ExplicitSimulation.run`."""
        if step % self.record_every != 0:
            return
        self.append(t, state, diagnostics)

    def append(self, t: float, state, diagnostics: Optional[dict] = None):
        """Manually record a snapshot (alternative to callback)."""
        snapshot = {}
        for f in self.fields:
            val = getattr(state, f, None)
            if val is None:
                continue
            snapshot[f] = np.array(val, copy=True)
        diag = dict(diagnostics) if diagnostics else {}
        self._snapshots.append((float(t), snapshot, diag))

    def _query(self, index: int, field: str):
        times = []
        values = []
        for t, snapshot, _ in self._snapshots:
            if field in snapshot and index < len(snapshot[field]):
                times.append(t)
                values.append(snapshot[field][index].copy())
        return times, values

    def query_node(self, node: int, field: str):
        """Get the time series of a nodal field at one node.

        Returns
        -------
        times : list[float]
        values : list
        """
        return self._query(node, field)

    def query_point(self, point: int, field: str):
        """Get the time series of a point field at one integration point."""
        return self._query(point, field)

    def query_field_at_time(self, t: float, field: str) -> Optional[np.ndarray]:
        """Field array at the snapshot closest to time t (None if never recorded)."""
        if not self._snapshots:
            return None

        idx = min(range(len(self._snapshots)),
                  key=lambda i: abs(self._snapshots[i][0] - t))
        _, snapshot, _ = self._snapshots[idx]
        return snapshot.get(field)

    def query_diagnostics(self) -> list[tuple[float, dict]]:
        """Return all (time, diagnostics) pairs."""
        return [(t, d) for t, _, d in self._snapshots]

    def clear(self):
        """Remove all recorded snapshots."""
        self._snapshots.clear()

"""Publicly exported variables and a collector that mirrors them as metrics."""

from __future__ import annotations

import json
import threading

from .metric import Collector, ValueType, new_const_metric, new_invalid_metric

_lock = threading.Lock()
_vars = {}


def publish(name, value):
    """Export value under name.

    The value is anything JSON-serialisable, or a callable returning such a
    value, which is called each time the variable is read. Raises ValueError
    if the name is already in use.
    """
    with _lock:
        if name in _vars:
            raise ValueError(f"reuse of exported var name: {name}")
        _vars[name] = value


def get(name):
    """Return the JSON text of the exported variable, or None if there is none.

    A value that cannot be serialised as JSON yields an empty string.
    """
    with _lock:
        if name not in _vars:
            return None
        value = _vars[name]
    if callable(value):
        value = value()
    try:
        return json.dumps(value, allow_nan=False)
    except (TypeError, ValueError):
        return ""


class ExpvarCollector(Collector):
    """Collects untyped metrics from exported variables.

    ``exports`` maps variable names to descriptors. A descriptor without
    variable labels takes a number or bool; with n variable labels the
    variable must be a map nested n levels deep whose keys become the label
    values and whose leaves are numbers or bools. Anything else is ignored.
    """

    def __init__(self, exports):
        self.exports = dict(exports)

    def describe(self):
        yield from self.exports.values()

    def collect(self):
        for name, desc in self.exports.items():
            text = get(name)
            if text is None:
                continue
            try:
                value = json.loads(text)
            except ValueError as err:
                yield new_invalid_metric(desc, err)
                continue
            yield from self._walk(desc, value, [])

    def _walk(self, desc, value, labels):
        if len(labels) >= len(desc.variable_labels):
            if isinstance(value, bool):
                number = 1.0 if value else 0.0
            elif isinstance(value, (int, float)):
                number = float(value)
            else:
                return
            yield new_const_metric(desc, ValueType.UNTYPED, number, *labels)
            return
        if not isinstance(value, dict):
            return
        for label_value, inner in value.items():
            yield from self._walk(desc, inner, [*labels, label_value])


def new_expvar_collector(exports):
    """Return a collector for the given variable-name-to-descriptor map."""
    return ExpvarCollector(exports)
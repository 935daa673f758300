"""Collections of metrics that share a descriptor but differ in label values."""

from __future__ import annotations

import copy
import threading

from .desc import validate_label_values
from .metric import Collector, InconsistentCardinalityError


def _as_str(value):
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return value


class _Store:
    """Metrics shared between a vector and the vectors curried from it."""

    def __init__(self):
        self.lock = threading.Lock()
        self.metrics = {}


class MetricVec(Collector):
    """Metrics with the same descriptor, keyed by their variable label values.

    ``new_metric`` is called with the full list of label values to create a
    metric the first time a combination is accessed.
    """

    def __init__(self, desc, new_metric):
        self.desc = desc
        self._new_metric = new_metric
        self._store = _Store()
        self._curry = ()

    def describe(self):
        yield self.desc

    def collect(self):
        with self._store.lock:
            metrics = list(self._store.metrics.values())
        yield from metrics

    def _uncurried_names(self):
        curried = {index for index, _ in self._curry}
        return [n for i, n in enumerate(self.desc.variable_labels) if i not in curried]

    def _values_from_label_values(self, label_values):
        names = self._uncurried_names()
        if len(label_values) != len(names):
            raise InconsistentCardinalityError(self.desc.fq_name, names, label_values)
        validate_label_values(label_values, len(label_values))
        curry = dict(self._curry)
        remaining = iter(label_values)
        return tuple(
            curry[i] if i in curry else _as_str(next(remaining))
            for i in range(len(self.desc.variable_labels))
        )

    def _values_from_labels(self, labels):
        names = self._uncurried_names()
        if len(labels) != len(names):
            raise InconsistentCardinalityError(self.desc.fq_name, names, list(labels.values()))
        validate_label_values(list(labels.values()), len(labels))
        curry = dict(self._curry)
        values = []
        for index, name in enumerate(self.desc.variable_labels):
            if index in curry:
                if name in labels:
                    raise ValueError(f"label name {name!r} is already curried")
                values.append(curry[index])
            else:
                if name not in labels:
                    raise ValueError(f"label name {name!r} missing in label map")
                values.append(_as_str(labels[name]))
        return tuple(values)

    def _get_or_create(self, values):
        with self._store.lock:
            metric = self._store.metrics.get(values)
            if metric is None:
                metric = self._new_metric(*values)
                self._store.metrics[values] = metric
        return metric

    def get_metric_with_label_values(self, *args):
        """Return the metric for the label values, creating it if needed."""
        return self._get_or_create(self._values_from_label_values(args))

    def get_metric_with(self, labels):
        """Return the metric for the label map, creating it if needed."""
        return self._get_or_create(self._values_from_labels(labels))

    def with_label_values(self, *args):
        """Shortcut for get_metric_with_label_values."""
        return self.get_metric_with_label_values(*args)

    def with_labels(self, labels):
        """Shortcut for get_metric_with."""
        return self.get_metric_with(labels)

    def curry_with(self, labels):
        """Return a vector of the same type with the given labels preset.

        The curried vector shares its metrics with this one.
        """
        old = dict(self._curry)
        new_curry = []
        for index, name in enumerate(self.desc.variable_labels):
            if index in old:
                if name in labels:
                    raise ValueError(f"label name {name!r} is already curried")
                new_curry.append((index, old[index]))
            elif name in labels:
                validate_label_values([labels[name]], 1)
                new_curry.append((index, _as_str(labels[name])))
        unknown = len(self._curry) + len(labels) - len(new_curry)
        if unknown > 0:
            raise ValueError(f"{unknown} unknown label(s) found during currying")
        vec = copy.copy(self)
        vec._curry = tuple(new_curry)
        return vec

    def delete_label_values(self, *args):
        """Remove the metric for the label values; return whether one was removed."""
        try:
            values = self._values_from_label_values(args)
        except ValueError:
            return False
        with self._store.lock:
            return self._store.metrics.pop(values, None) is not None

    def delete(self, labels):
        """Remove the metric for the label map; return whether one was removed."""
        try:
            values = self._values_from_labels(labels)
        except ValueError:
            return False
        with self._store.lock:
            return self._store.metrics.pop(values, None) is not None

    def reset(self):
        """Remove all metrics, including those reached through curried vectors."""
        with self._store.lock:
            self._store.metrics.clear()
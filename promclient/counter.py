"""Counters: metrics whose value only ever goes up."""

from __future__ import annotations

import math
import threading
from datetime import datetime, timezone

from .desc import Opts, build_fq_name, new_desc
from .metric import (
    InconsistentCardinalityError,
    Metric,
    SelfCollector,
    ValueType,
    make_label_pairs,
    new_exemplar,
    new_value_func,
    populate_metric,
)
from .vector import MetricVec

CounterOpts = Opts

_UINT64_LIMIT = 1 << 64
_MASK64 = _UINT64_LIMIT - 1


def _utc_now():
    return datetime.now(timezone.utc)


class Counter(Metric, SelfCollector):
    """A metric holding a single value that can only increase.

    The value is tracked in two parts: ``int_value`` accumulates increments
    that are exact integers (wrapping like an unsigned 64-bit integer), and
    ``float_value`` accumulates all other increments. Both are summed on write.
    """

    def __init__(self, desc, label_pairs=(), now=None):
        self.desc = desc
        self.label_pairs = tuple(label_pairs)
        self.now = now if now is not None else _utc_now
        self.float_value = 0.0
        self.int_value = 0
        self.exemplar = None
        self._lock = threading.Lock()

    def inc(self):
        """Increment the counter by 1."""
        with self._lock:
            self.int_value = (self.int_value + 1) & _MASK64

    def add(self, value):
        """Add a non-negative value; raise ValueError if it is negative."""
        value = float(value)
        if value < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            if math.isfinite(value) and value < _UINT64_LIMIT and value == int(value):
                self.int_value = (self.int_value + int(value)) & _MASK64
            else:
                self.float_value += value

    def add_with_exemplar(self, value, labels):
        """Add value and replace the exemplar, unless labels is None.

        Raises ValueError for a negative value, invalid labels, or labels
        longer than 64 runes in total.
        """
        self.add(value)
        self._update_exemplar(value, labels)

    def _update_exemplar(self, value, labels):
        if labels is None:
            return
        exemplar = new_exemplar(value, self.now(), labels)
        with self._lock:
            self.exemplar = exemplar

    def write(self):
        with self._lock:
            total = self.float_value + float(self.int_value)
            exemplar = self.exemplar
        return populate_metric(ValueType.COUNTER, total, self.label_pairs, exemplar)


class CounterVec(MetricVec):
    """Counters sharing one descriptor, partitioned by label values."""

    def curry_with(self, labels):
        """Return a CounterVec with the given labels preset, sharing its counters."""
        return super().curry_with(labels)


def _desc_from_opts(opts, label_names=None):
    return new_desc(
        build_fq_name(opts.namespace, opts.subsystem, opts.name),
        opts.help,
        label_names,
        opts.const_labels,
    )


def new_counter(opts):
    """Create a Counter from the given options."""
    desc = _desc_from_opts(opts)
    return Counter(desc, make_label_pairs(desc, ()))


def new_counter_vec(opts, label_names):
    """Create a CounterVec partitioned by the given label names."""
    desc = _desc_from_opts(opts, label_names)

    def new_metric(*label_values):
        if len(label_values) != len(desc.variable_labels):
            raise InconsistentCardinalityError(desc.fq_name, desc.variable_labels, label_values)
        return Counter(desc, make_label_pairs(desc, label_values))

    return CounterVec(desc, new_metric)


def new_counter_func(opts, function):
    """Create a counter whose value is obtained by calling function on write."""
    return new_value_func(_desc_from_opts(opts), ValueType.COUNTER, function)
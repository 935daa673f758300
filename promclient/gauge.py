"""Gauges: metrics whose value can go up and down."""

from __future__ import annotations

import threading
import time

from .desc import Opts, build_fq_name, new_desc
from .metric import (
    InconsistentCardinalityError,
    Metric,
    SelfCollector,
    ValueType,
    make_label_pairs,
    new_value_func,
    populate_metric,
)
from .vector import MetricVec

GaugeOpts = Opts


class Gauge(Metric, SelfCollector):
    """A metric holding a single value that can change arbitrarily."""

    def __init__(self, desc, label_pairs=()):
        self.desc = desc
        self.label_pairs = tuple(label_pairs)
        self._value = 0.0
        self._lock = threading.Lock()

    def set(self, value):
        """Set the gauge to value."""
        with self._lock:
            self._value = float(value)

    def set_to_current_time(self):
        """Set the gauge to the current Unix time in seconds."""
        self.set(time.time_ns() / 1e9)

    def inc(self):
        """Increment the gauge by 1."""
        self.add(1)

    def dec(self):
        """Decrement the gauge by 1."""
        self.add(-1)

    def add(self, value):
        """Add value, which may be negative."""
        with self._lock:
            self._value += float(value)

    def sub(self, value):
        """Subtract value, which may be negative."""
        self.add(float(value) * -1)

    def write(self):
        with self._lock:
            value = self._value
        return populate_metric(ValueType.GAUGE, value, self.label_pairs, None)


class GaugeVec(MetricVec):
    """Gauges sharing one descriptor, partitioned by label values."""

    def curry_with(self, labels):
        """Return a GaugeVec with the given labels preset, sharing its gauges."""
        return super().curry_with(labels)


def _desc_from_opts(opts, label_names=None):
    return new_desc(
        build_fq_name(opts.namespace, opts.subsystem, opts.name),
        opts.help,
        label_names,
        opts.const_labels,
    )


def new_gauge(opts):
    """Create a Gauge from the given options."""
    desc = _desc_from_opts(opts)
    return Gauge(desc, make_label_pairs(desc, ()))


def new_gauge_vec(opts, label_names):
    """Create a GaugeVec partitioned by the given label names."""
    desc = _desc_from_opts(opts, label_names)

    def new_metric(*label_values):
        if len(label_values) != len(desc.variable_labels):
            raise InconsistentCardinalityError(desc.fq_name, desc.variable_labels, label_values)
        return Gauge(desc, make_label_pairs(desc, label_values))

    return GaugeVec(desc, new_metric)


def new_gauge_func(opts, function):
    """Create a gauge whose value is obtained by calling function on write."""
    return new_value_func(_desc_from_opts(opts), ValueType.GAUGE, function)
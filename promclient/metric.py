"""Metrics, collectors and the samples they write."""

from __future__ import annotations

import abc
import enum
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple

from .desc import Desc, check_label_name, validate_label_values

EXEMPLAR_MAX_RUNES = 64

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ValueType(enum.IntEnum):
    """The kind of value a simple metric carries."""

    COUNTER = 1
    GAUGE = 2
    UNTYPED = 3


class LabelPair(NamedTuple):
    """A label name with its value."""

    name: str
    value: str


def _format_float(value):
    """Format a float with the shortest representation, in %g style."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digits, exponent = Decimal(repr(float(value))).as_tuple()
    digits = list(digits)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    exp10 = len(digits) + exponent - 1
    prefix = "-" if sign else ""
    if exp10 < -4 or exp10 >= 6:
        mantissa = str(digits[0])
        if len(digits) > 1:
            mantissa += "." + "".join(str(d) for d in digits[1:])
        exp_sign = "-" if exp10 < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(exp10):02d}"
    return prefix + format(Decimal((0, tuple(digits), exponent)), "f")


def _quote(value):
    """Quote a string the way the protobuf text format does."""
    if isinstance(value, (bytes, bytearray)):
        data = bytes(value)
    else:
        data = value.encode("utf-8", "surrogateescape")
    out = []
    for byte in data:
        if byte == 0x0A:
            out.append("\\n")
        elif byte == 0x0D:
            out.append("\\r")
        elif byte == 0x09:
            out.append("\\t")
        elif byte in (0x22, 0x27, 0x5C):
            out.append("\\" + chr(byte))
        elif 0x20 <= byte < 0x7F:
            out.append(chr(byte))
        else:
            out.append(f"\\{byte:03o}")
    return '"' + "".join(out) + '"'


def _label_text(value):
    """Return value as str, raising ValueError if it is not valid UTF-8."""
    try:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8")
        value.encode("utf-8")
    except UnicodeError:
        raise ValueError(f"exemplar label value {_quote(value)} is not valid UTF-8") from None
    return value


def _split_timestamp(ts):
    if ts.tzinfo is None:
        ts = ts.astimezone()
    delta = ts - _EPOCH
    return delta.days * 86400 + delta.seconds, delta.microseconds * 1000


def _format_labels(pairs):
    return "".join(f"label:<name:{_quote(p.name)} value:{_quote(p.value)} > " for p in pairs)


@dataclass(frozen=True)
class Exemplar:
    """A sample value with labels and a timestamp, attached to a counter."""

    labels: tuple
    value: float
    timestamp: datetime | None = None

    def __str__(self):
        text = _format_labels(self.labels) + f"value:{_format_float(self.value)} "
        if self.timestamp is not None:
            seconds, nanos = _split_timestamp(self.timestamp)
            inner = (f"seconds:{seconds} " if seconds else "") + (f"nanos:{nanos} " if nanos else "")
            text += f"timestamp:<{inner}> "
        return text


@dataclass(frozen=True)
class MetricSample:
    """What a metric writes on collection: labels, type, value, exemplar."""

    value_type: ValueType
    value: float
    labels: tuple = ()
    exemplar: Exemplar | None = None

    def __str__(self):
        inner = f"value:{_format_float(self.value)} "
        if self.exemplar is not None:
            inner += f"exemplar:<{self.exemplar}> "
        return _format_labels(self.labels) + f"{self.value_type.name.lower()}:<{inner}> "


class Metric(abc.ABC):
    """A single sample value with its descriptor."""

    desc: Desc

    @abc.abstractmethod
    def write(self):
        """Return the current state of the metric as a MetricSample."""


class Collector(abc.ABC):
    """Anything that yields descriptors and metrics for collection."""

    @abc.abstractmethod
    def describe(self):
        """Yield every descriptor this collector may collect."""

    @abc.abstractmethod
    def collect(self):
        """Yield the metrics currently collected."""


class SelfCollector(Collector):
    """Collector mixin for a metric that collects only itself."""

    def describe(self):
        yield self.desc

    def collect(self):
        yield self


class InconsistentCardinalityError(ValueError):
    """The number of label values does not match the number of label names."""

    def __init__(self, fq_name, label_names, label_values):
        self.fq_name = fq_name
        self.label_names = list(label_names)
        self.label_values = list(label_values)
        super().__init__(
            f"inconsistent label cardinality: {fq_name!r} has {len(self.label_names)} "
            f"variable labels named {self.label_names!r} but {len(self.label_values)} "
            f"values {self.label_values!r} were provided"
        )


@dataclass(frozen=True, eq=False)
class ConstMetric(Metric):
    """A metric with a fixed value, created on the fly during collection."""

    desc: Desc
    value_type: ValueType
    value: float
    label_pairs: tuple = ()

    def write(self):
        return populate_metric(self.value_type, self.value, self.label_pairs, None)


@dataclass(frozen=True, eq=False)
class InvalidMetric(Metric):
    """A metric that reports an error when written."""

    desc: Desc
    err: Exception

    def write(self):
        raise self.err


class ValueFunc(Metric, SelfCollector):
    """A metric whose value is obtained by calling a function on write."""

    def __init__(self, desc, value_type, function):
        self.desc = desc
        self.value_type = ValueType(value_type)
        self.function = function
        self.label_pairs = make_label_pairs(desc, ())

    def write(self):
        return populate_metric(self.value_type, self.function(), self.label_pairs, None)


def describe_by_collect(collector):
    """Yield the descriptors of the metrics the collector collects."""
    for metric in collector.collect():
        yield metric.desc


def populate_metric(value_type, value, label_pairs, exemplar):
    """Build a MetricSample; raise ValueError for an unknown value type."""
    try:
        kind = ValueType(value_type)
    except ValueError:
        raise ValueError(f"encountered unknown type {value_type!r}") from None
    if kind is not ValueType.COUNTER:
        exemplar = None
    return MetricSample(kind, float(value), tuple(label_pairs or ()), exemplar)


def new_exemplar(value, ts, labels):
    """Create an exemplar, validating its labels and their total size."""
    pairs = []
    runes = 0
    for name, label_value in labels.items():
        if not check_label_name(name):
            raise ValueError(f"exemplar label name {name!r} is invalid")
        text = _label_text(label_value)
        runes += len(name) + len(text)
        pairs.append(LabelPair(name, text))
    if runes > EXEMPLAR_MAX_RUNES:
        raise ValueError(
            f"exemplar labels have {runes} runes, exceeding the limit of {EXEMPLAR_MAX_RUNES}"
        )
    pairs.sort(key=lambda p: p.name)
    return Exemplar(tuple(pairs), float(value), ts)


def make_label_pairs(desc, label_values):
    """Merge const labels and variable label values into sorted label pairs."""
    const = tuple(LabelPair(*pair) for pair in desc.const_label_pairs)
    if not desc.variable_labels:
        return const
    pairs = [LabelPair(n, v) for n, v in zip(desc.variable_labels, label_values, strict=True)]
    pairs.extend(const)
    pairs.sort(key=lambda p: p.name)
    return tuple(pairs)


def new_const_metric(desc, value_type, value, *args):
    """Create a ConstMetric; raise if desc is invalid or labels do not fit."""
    if desc.err is not None:
        raise desc.err
    if len(args) != len(desc.variable_labels):
        raise InconsistentCardinalityError(desc.fq_name, desc.variable_labels, args)
    validate_label_values(args, len(args))
    return ConstMetric(desc, ValueType(value_type), float(value), make_label_pairs(desc, args))


def new_invalid_metric(desc, err):
    """Return a metric whose write raises err."""
    return InvalidMetric(desc, err)


def new_value_func(desc, value_type, function):
    """Return a metric that reports function() as its value."""
    return ValueFunc(desc, value_type, function)
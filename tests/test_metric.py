import math
from datetime import datetime, timezone

import pytest

from promclient.desc import new_desc
from promclient.metric import (
    Collector,
    InconsistentCardinalityError,
    LabelPair,
    Metric,
    ValueType,
    describe_by_collect,
    make_label_pairs,
    new_const_metric,
    new_exemplar,
    new_invalid_metric,
    new_value_func,
    populate_metric,
)


class _ListCollector(Collector):
    def __init__(self, metrics):
        self.metrics = metrics

    def describe(self):
        return describe_by_collect(self)

    def collect(self):
        yield from self.metrics


def test_describe_by_collect_yields_metric_descs():
    d1 = new_desc("c1", "help c1")
    d2 = new_desc("g1", "help g1")
    metrics = [
        new_const_metric(d1, ValueType.COUNTER, 1),
        new_const_metric(d2, ValueType.GAUGE, 2),
    ]
    collector = _ListCollector(metrics)
    assert list(collector.describe()) == [d1, d2]


def test_value_func_collects_itself():
    desc = new_desc("test_name", "test help")
    vf = new_value_func(desc, ValueType.GAUGE, lambda: 1.0)
    assert list(vf.describe()) == [desc]
    collected = list(vf.collect())
    assert len(collected) == 1
    assert collected[0] is vf


def test_gauge_func_write():
    desc = new_desc("test_name", "test help", None, {"a": "1", "b": "2"})
    vf = new_value_func(desc, ValueType.GAUGE, lambda: 3.1415)
    assert str(desc) == (
        'Desc{fqName: "test_name", help: "test help", constLabels: {a="1",b="2"}, '
        "variableLabels: []}"
    )
    assert str(vf.write()) == (
        'label:<name:"a" value:"1" > label:<name:"b" value:"2" > gauge:<value:3.1415 > '
    )


def test_counter_sample_text():
    pairs = (LabelPair("a", "1"), LabelPair("b", "2"))
    sample = populate_metric(ValueType.COUNTER, 24.42 + 43, pairs, None)
    assert str(sample) == (
        'label:<name:"a" value:"1" > label:<name:"b" value:"2" > counter:<value:67.42 > '
    )


def test_counter_sample_inf():
    sample = populate_metric(ValueType.COUNTER, math.inf, (), None)
    assert str(sample) == "counter:<value:inf > "


def test_counter_sample_large():
    large = math.nextafter(float(2**64), 1e20)
    sample = populate_metric(ValueType.COUNTER, large, (), None)
    assert str(sample) == f"counter:<value:{large:.16e} > "


def test_counter_sample_small():
    small = 0.000000000001
    sample = populate_metric(ValueType.COUNTER, small, (), None)
    assert str(sample) == f"counter:<value:{small:.0e} > "


def test_const_metric_untyped_with_labels():
    desc = new_desc("expvar_http_request_total", "requests", ["code", "method"], None)
    metric = new_const_metric(desc, ValueType.UNTYPED, 212, "200", "GET")
    assert str(metric.write()) == (
        'label:<name:"code" value:"200" > label:<name:"method" value:"GET" > '
        "untyped:<value:212 > "
    )


def test_const_metric_untyped_without_labels():
    desc = new_desc("expvar_lone_int", "lone int")
    metric = new_const_metric(desc, ValueType.UNTYPED, 42)
    assert str(metric.write()) == "untyped:<value:42 > "


def test_const_metric_wrong_cardinality():
    desc = new_desc("test", "help", ["a"], None)
    with pytest.raises(InconsistentCardinalityError):
        new_const_metric(desc, ValueType.GAUGE, 1, "x", "y")


def test_const_metric_invalid_desc_raises_its_error():
    desc = new_desc("sample_label", "sample label", None, {"a": b"\xff"})
    assert desc.err is not None
    with pytest.raises(ValueError) as info:
        new_const_metric(desc, ValueType.GAUGE, 1)
    assert info.value is desc.err


def test_const_metric_invalid_utf8_value():
    desc = new_desc("test", "help", ["a"], None)
    with pytest.raises(ValueError):
        new_const_metric(desc, ValueType.GAUGE, 1, b"\xff")


def test_invalid_metric_write_raises():
    desc = new_desc("test", "help")
    err = RuntimeError("boom")
    metric = new_invalid_metric(desc, err)
    assert metric.desc is desc
    with pytest.raises(RuntimeError, match="boom"):
        metric.write()


def test_metric_is_abstract():
    with pytest.raises(TypeError):
        Metric()


def test_populate_metric_unknown_type():
    with pytest.raises(ValueError, match="unknown type"):
        populate_metric("bogus", 1.0, (), None)


def test_make_label_pairs_sorted_merge():
    desc = new_desc("test", "help", ["z", "a"], {"m": "1"})
    pairs = make_label_pairs(desc, ["zv", "av"])
    assert pairs == (LabelPair("a", "av"), LabelPair("m", "1"), LabelPair("z", "zv"))


def test_make_label_pairs_const_only():
    desc = new_desc("test", "help", None, {"b": "2", "a": "1"})
    assert make_label_pairs(desc, ()) == (LabelPair("a", "1"), LabelPair("b", "2"))


def test_new_exemplar_valid():
    now = datetime.now(timezone.utc)
    exemplar = new_exemplar(42, now, {"foo": "bar"})
    assert exemplar.labels == (LabelPair("foo", "bar"),)
    assert exemplar.value == 42
    assert exemplar.timestamp == now


def test_new_exemplar_invalid_label_name():
    with pytest.raises(ValueError):
        new_exemplar(42, datetime.now(timezone.utc), {":o)": "smile"})


def test_new_exemplar_oversized_labels():
    with pytest.raises(ValueError, match="65 runes"):
        new_exemplar(
            42,
            datetime.now(timezone.utc),
            {"abcdefghijklmnopqrstuvwxyz": "26+16 characters", "x1234567": "8+15 characters"},
        )


def test_counter_sample_with_exemplar_text():
    exemplar = new_exemplar(42, datetime.now(timezone.utc), {"foo": "bar"})
    sample = populate_metric(ValueType.COUNTER, 42, (), exemplar)
    assert str(sample).startswith(
        'counter:<value:42 exemplar:<label:<name:"foo" value:"bar" > value:42 timestamp:<seconds:'
    )


def test_gauge_sample_drops_exemplar():
    exemplar = new_exemplar(1, datetime.now(timezone.utc), {"foo": "bar"})
    sample = populate_metric(ValueType.GAUGE, 1, (), exemplar)
    assert sample.exemplar is None
    assert str(sample) == "gauge:<value:1 > "
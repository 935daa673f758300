import pytest

from promclient.desc import new_desc
from promclient.expvar import ExpvarCollector, get, new_expvar_collector, publish


def _lines(collector):
    return sorted(str(m.write()).rstrip(" ") for m in collector.collect())


def test_example_output():
    collector = new_expvar_collector(
        {
            "ex-lone-int": new_desc(
                "expvar_lone_int", "Just an expvar int as an example.", None, None
            ),
            "ex-http-request-map": new_desc(
                "expvar_http_request_total",
                "How many http requests processed, partitioned by status code and http method.",
                ["code", "method"],
                None,
            ),
        }
    )
    publish("ex-lone-int", 42)
    publish(
        "ex-http-request-map",
        {"404": {"POST": 3, "GET": 13}, "200": {"POST": 11, "GET": 212}},
    )
    assert _lines(collector) == [
        'label:<name:"code" value:"200" > label:<name:"method" value:"GET" > untyped:<value:212 >',
        'label:<name:"code" value:"200" > label:<name:"method" value:"POST" > untyped:<value:11 >',
        'label:<name:"code" value:"404" > label:<name:"method" value:"GET" > untyped:<value:13 >',
        'label:<name:"code" value:"404" > label:<name:"method" value:"POST" > untyped:<value:3 >',
        "untyped:<value:42 >",
    ]


def test_bools_become_one_and_zero():
    collector = ExpvarCollector(
        {
            "bool-true": new_desc("flag_true", "help", None, None),
            "bool-map": new_desc("flag_map", "help", ["state"], None),
        }
    )
    publish("bool-true", True)
    publish("bool-map", {"off": False})
    assert _lines(collector) == [
        'label:<name:"state" value:"off" > untyped:<value:0 >',
        "untyped:<value:1 >",
    ]


def test_unpublished_variable_is_skipped():
    collector = new_expvar_collector({"never-published": new_desc("never", "help", None, None)})
    assert list(collector.collect()) == []


def test_values_not_fitting_the_scheme_are_ignored():
    collector = new_expvar_collector(
        {
            "wrong-string": new_desc("wrong_string", "help", None, None),
            "wrong-depth": new_desc("wrong_depth", "help", ["a"], None),
            "wrong-map": new_desc("wrong_map", "help", None, None),
        }
    )
    publish("wrong-string", "text")
    publish("wrong-depth", 5)
    publish("wrong-map", {"a": 1})
    assert list(collector.collect()) == []


def test_unserialisable_value_yields_invalid_metric():
    desc = new_desc("broken", "help", None, None)
    collector = new_expvar_collector({"broken-var": desc})
    publish("broken-var", lambda: object())
    metrics = list(collector.collect())
    assert len(metrics) == 1
    assert metrics[0].desc is desc
    with pytest.raises(ValueError):
        metrics[0].write()


def test_describe_yields_all_descs():
    first = new_desc("first", "help", None, None)
    second = new_desc("second", "help", ["x"], None)
    collector = new_expvar_collector({"d1": first, "d2": second})
    described = list(collector.describe())
    assert len(described) == 2
    assert described[0] is first
    assert described[1] is second


def test_publish_twice_raises():
    publish("dup-var", 1)
    with pytest.raises(ValueError):
        publish("dup-var", 2)


def test_get_returns_json_text():
    publish("get-map", {"a": 1})
    assert get("get-map") == '{"a": 1}'
    assert get("not-there") is None


def test_callable_is_read_on_each_get():
    state = {"n": 1}
    publish("get-callable", lambda: state["n"])
    assert get("get-callable") == "1"
    state["n"] = 7
    assert get("get-callable") == "7"
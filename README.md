# promclient

Prometheus-style metric primitives for Python code: descriptors, counters,
gauges, labelled vectors of them, and a collector that mirrors published
values as metrics. It also has a small HTTP client bound to a server's base
address. The package uses only the standard library.

## Installation

```
pip install promclient
```

To run the test suite, install the test extra and run pytest:

```
pip install "promclient[test]"
pytest
```

## Descriptors

`promclient.desc.new_desc(fq_name, help, variable_labels, const_labels)`
builds an immutable `Desc`. Invalid metric names, invalid or reserved
(`__`-prefixed) label names, label values that are not valid UTF-8 and
duplicate label names do not raise; the error is kept in `Desc.err`.
`build_fq_name(namespace, subsystem, name)` joins the non-empty parts with
underscores. `Opts` holds `namespace`, `subsystem`, `name`, `help` and
`const_labels` for the metric constructors below.

## Counters and gauges

Counters only go up. Gauges can go up and down.

```python
from promclient.desc import Opts
from promclient.counter import new_counter, new_counter_vec
from promclient.gauge import new_gauge, new_gauge_func

requests_total = new_counter(Opts(name="requests_total", help="Requests served."))
requests_total.inc()
requests_total.add(2.5)
print(requests_total.write())   # counter:<value:3.5 >

errors = new_counter_vec(Opts(name="hd_errors_total", help="Disk errors."), ["device"])
errors.with_label_values("/dev/sda").inc()
errors.with_labels({"device": "/dev/sdb"}).add(3)

temperature = new_gauge(Opts(name="cpu_temperature_celsius", help="CPU temperature."))
temperature.set(65.3)
temperature.dec()
temperature.set_to_current_time()

info = new_gauge_func(Opts(name="build_info", help="Build info."), lambda: 1.0)
print(info.write())
```

`Counter.add` raises `ValueError` for a negative value.
`Counter.add_with_exemplar(value, labels)` also stores an exemplar with the
current time; it raises `ValueError` for invalid label names, values that are
not valid UTF-8, or labels longer than 64 characters in total. Passing
`None` as labels keeps the current exemplar.

### Vectors

`CounterVec` and `GaugeVec` are `promclient.vector.MetricVec` collections
keyed by label values. Asking for the wrong number of label values raises
`promclient.metric.InconsistentCardinalityError` (a `ValueError`); a missing
or unknown label name raises `ValueError`. `curry_with(labels)` returns a
vector with some labels preset that shares its metrics with the original.
`delete_label_values(*values)` and `delete(labels)` remove one metric and
return whether one was removed; `reset()` removes them all.

### Collecting

Every metric and vector is a `promclient.metric.Collector`: `describe()`
yields descriptors and `collect()` yields metrics.
`promclient.metric.describe_by_collect(collector)` yields the descriptors of
whatever a collector collects. A metric's `write()` returns a `MetricSample`
whose string form is the protobuf text form of a single sample, for example
`label:<name:"a" value:"1" > gauge:<value:3.1415 > `.
`new_const_metric(desc, value_type, value, *label_values)` creates a fixed
metric during collection, and `new_invalid_metric(desc, err)` one whose
`write()` raises `err`.

## Published values

`promclient.expvar.publish(name, value)` exports a JSON-serialisable value,
or a callable returning one; `get(name)` returns its JSON text. An
`ExpvarCollector` turns published numbers and bools into untyped metrics,
reading nested maps as label values.

```python
from promclient import expvar
from promclient.desc import new_desc
from promclient.expvar import new_expvar_collector

expvar.publish("lone-int", 42)
expvar.publish("http-requests", {"200": {"GET": 212}, "404": {"GET": 13}})
collector = new_expvar_collector({
    "lone-int": new_desc("expvar_lone_int", "An exported int.", None, None),
    "http-requests": new_desc("expvar_http_requests_total", "Requests.", ["code", "method"], None),
})
for metric in collector.collect():
    print(metric.write())
```

## HTTP client

```python
from promclient.client import Config, Request, new_client

client = new_client(Config(address="http://localhost:9090"))
url = client.url("/api/v1/label/:name/values", {"name": "job"})
response = client.do(Request("GET", url), timeout=10)
print(response.status_code, response.body)
```

`Client.url` joins the endpoint to the address's path and replaces every
`:name` with the matching argument. `Client.do` returns a `Response` with the
status code, headers and whole body, including for error status codes;
transport failures raise `urllib.error.URLError` or `TimeoutError`. A custom
`urllib.request.OpenerDirector` can be given as `Config.opener`.

## What it does not do

- There is no registry: nothing checks descriptors for consistency or
  gathers metrics from several collectors, and `Desc.err` is only stored.
- There is no exposition: the package does not render the text format for
  scraping and does not serve a `/metrics` endpoint.
- There are no histograms or summaries.
- The HTTP client has no typed wrappers for a Prometheus server's query API.
  Requests are built and their JSON responses read by the caller.
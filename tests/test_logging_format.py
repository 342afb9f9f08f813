import logging

from paytr_bridge.core.logging import AccessNoiseFilter, ExtraFieldsFormatter


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("paytr", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_extra_fields_are_appended_sorted() -> None:
    formatter = ExtraFieldsFormatter("%(message)s%(extra_fields)s")

    line = formatter.format(_record("order_forwarded", order_reference="ORD1", amount=299))

    assert line == "order_forwarded | amount=299 order_reference=ORD1"


def test_line_without_extras_has_no_suffix() -> None:
    formatter = ExtraFieldsFormatter("%(message)s%(extra_fields)s")

    assert formatter.format(_record("paytr_callback_received")) == "paytr_callback_received"


def test_access_filter_drops_scanner_paths() -> None:
    noise_filter = AccessNoiseFilter()

    assert noise_filter.filter(_record('"GET /.env HTTP/1.1" 404')) is False
    assert noise_filter.filter(_record('"POST /paytr-callback HTTP/1.1" 200')) is True


def test_signature_fields_are_redacted() -> None:
    formatter = ExtraFieldsFormatter("%(message)s%(extra_fields)s")

    line = formatter.format(_record("paytr_callback_received", hash="c2VjcmV0", order_reference="ORD1"))

    assert line == "paytr_callback_received | hash=*** order_reference=ORD1"
    assert "c2VjcmV0" not in line


def test_access_filter_keeps_callback_traffic_and_drops_cgi_probes() -> None:
    noise_filter = AccessNoiseFilter()

    assert noise_filter.filter(_record('"GET /paytr-callback?merchant_oid=ORD1 HTTP/1.1" 302')) is True
    assert noise_filter.filter(_record('"GET /cgi-bin/luci HTTP/1.1" 404')) is False

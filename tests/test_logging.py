import json
import logging

from starlette.requests import Request

from app.core import context
from app.core.limiter import company_scoped_key
from app.core.logging import JsonFormatter, RequestContextFilter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("leadforge.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_request_scope():
    context.clear_context()
    context.set_tenant_id("acme")
    context.set_request_id("req-1")
    context.set_actor_id("user-9")
    record = _record()
    RequestContextFilter().filter(record)

    line = json.loads(JsonFormatter(channel="app").format(record))

    assert line["msg"] == "hello world"
    assert line["company_id"] == "acme"
    assert line["request_id"] == "req-1"
    assert line["actor_id"] == "user-9"
    assert line["channel"] == "app"
    context.clear_context()


def test_audit_fields_are_emitted_when_present():
    record = _record(action="lead.funding.updated", resource_type="lead", resource_id="abc")

    line = json.loads(JsonFormatter(channel="audit").format(record))

    assert line["action"] == "lead.funding.updated"
    assert line["resource_id"] == "abc"
    assert "action" not in json.loads(JsonFormatter().format(_record()))


def test_rate_limit_key_is_company_scoped():
    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(b"x-tenant-id", b"acme")],
            "client": ("10.0.0.5", 1234),
        }
    )

    assert company_scoped_key(request) == "acme:10.0.0.5"

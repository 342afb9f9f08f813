import json
import unittest

import httpx

from paytr_bridge.core.config import Settings
from paytr_bridge.core.monitoring import send_monitoring_event


class MonitoringEventTests(unittest.IsolatedAsyncioTestCase):
    async def test_event_is_posted_when_webhook_configured(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        await send_monitoring_event(
            "order_forward_failed",
            {"order_reference": "ORD1"},
            settings=Settings(monitoring_webhook_url="https://monitor.example/hook"),
            transport=httpx.MockTransport(handler),
        )

        self.assertEqual(len(seen), 1)
        self.assertEqual(
            json.loads(seen[0].content),
            {"event": "order_forward_failed", "payload": {"order_reference": "ORD1"}},
        )

    async def test_no_webhook_means_no_request(self) -> None:
        seen: list[httpx.Request] = []

        await send_monitoring_event(
            "paytr_signature_mismatch",
            {},
            settings=Settings(monitoring_webhook_url=None),
            transport=httpx.MockTransport(lambda request: seen.append(request) or httpx.Response(200)),
        )

        self.assertEqual(seen, [])

    async def test_transport_failure_is_swallowed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        await send_monitoring_event(
            "order_forward_failed",
            {},
            settings=Settings(monitoring_webhook_url="https://monitor.example/hook"),
            transport=httpx.MockTransport(handler),
        )


if __name__ == "__main__":
    unittest.main()

"""Unit tests for the outbound notification client."""

import httpx
import pytest
from services.commerce_service.services.notifications import NotificationClient


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivered_notification(monkeypatch):
    sent = []

    async def fake_post(self, url, **kwargs):
        sent.append((url, kwargs["json"]["event"]))
        return httpx.Response(202, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", fake_post)
    client = NotificationClient(url="http://notify.internal/events")

    assert await client.notify("order.created", recipient="customer-1") is True
    assert sent == [("http://notify.internal/events", "order.created")]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unconfigured_endpoint_only_logs():
    assert await NotificationClient().notify("order.created") is False


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "error",
    [
        httpx.InvalidURL("Invalid URL"),
        httpx.ConnectError("Connection refused"),
        RuntimeError("unexpected"),
    ],
)
async def test_send_failures_never_propagate(monkeypatch, error):
    async def broken_post(self, url, **kwargs):
        raise error

    monkeypatch.setattr(httpx.AsyncClient, "post", broken_post)
    client = NotificationClient(url="http://notify.internal/events")

    assert await client.notify("order.paid", recipient="customer-1") is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_error_status_is_not_delivered(monkeypatch):
    async def rejected_post(self, url, **kwargs):
        return httpx.Response(503, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx.AsyncClient, "post", rejected_post)
    client = NotificationClient(url="http://notify.internal/events")

    assert await client.notify("order.paid") is False

"""Message router, cache invalidation and toast wording."""

import pytest

from laptoppos.realtime.invalidation import (
    DASHBOARD_STATS_KEY,
    RESOURCE_CACHE_KEYS,
    QueryCache,
    cache_keys_for,
    invalidate_for_resource,
)
from laptoppos.realtime.messages import InboundMessage
from laptoppos.realtime.notifications import DATA_UPDATED_TITLE, describe_change, notify_data_update
from laptoppos.realtime.router import MessageRouter


def _update(**fields) -> InboundMessage:
    return InboundMessage(type="data_update", **fields)


# ─── Invalidation ────────────────────────────────────────


def test_products_invalidate_list_low_stock_and_dashboard(cache):
    keys = invalidate_for_resource("products", cache)

    assert keys == ["/api/products", "/api/products/low-stock", DASHBOARD_STATS_KEY]
    assert cache.invalidated == keys


def test_dashboard_invalidated_once(cache):
    invalidate_for_resource("dashboard", cache)
    assert cache.invalidated == [DASHBOARD_STATS_KEY]


def test_unknown_resource_only_hits_dashboard(cache):
    invalidate_for_resource("unknown-resource", cache)
    assert cache.invalidated == [DASHBOARD_STATS_KEY]


@pytest.mark.parametrize("resource,expected", [
    ("inventory", ["/api/products", "/api/categories", "/api/reports/stock-movements"]),
    ("purchase-orders", ["/api/purchase-orders", "/api/purchase-orders/outstanding-items"]),
    ("stock-movements", ["/api/reports/stock-movements", "/api/products"]),
    ("whatsapp", ["/api/whatsapp/status"]),
])
def test_multi_key_resources_keep_order(resource, expected):
    assert cache_keys_for(resource) == expected + [DASHBOARD_STATS_KEY]


def test_table_covers_every_resource():
    assert set(RESOURCE_CACHE_KEYS) == {
        "users", "customers", "products", "categories", "service-tickets",
        "suppliers", "transactions", "warranty-claims", "roles", "dashboard",
        "whatsapp", "inventory", "purchase-orders", "stock-movements",
    }


def test_query_cache_drops_value_and_records_key():
    qc = QueryCache()
    qc.set("/api/users", [{"id": 1}])

    invalidate_for_resource("users", qc)

    assert "/api/users" not in qc
    assert qc.get("/api/users") is None
    assert qc.invalidations == ["/api/users", DASHBOARD_STATS_KEY]


# ─── Notifications ───────────────────────────────────────


@pytest.mark.parametrize("resource,action,text", [
    ("products", "create", "Produk telah ditambahkan"),
    ("service-tickets", "update", "Tiket Servis telah diperbarui"),
    ("warranty-claims", "delete", "Garansi telah dihapus"),
    ("whatsapp", "update", "whatsapp telah diperbarui"),
    ("users", "archive", "User telah archive"),
])
def test_describe_change_labels_and_fallbacks(resource, action, text):
    assert describe_change(resource, action) == text


def test_toast_has_fixed_title_and_duration(toasts):
    toast = notify_data_update(toasts.append, "customers", "create")

    assert toasts == [toast]
    assert toast.title == DATA_UPDATED_TITLE
    assert toast.duration_ms == 3000


# ─── Router ──────────────────────────────────────────────


@pytest.mark.parametrize("message_type", ["connected", "auth_success", "pong", ""])
def test_non_update_messages_touch_nothing(message_type, cache, toasts):
    router = MessageRouter(cache, toasts.append)
    router.dispatch(InboundMessage(type=message_type, resource="products", action="create"))

    assert cache.invalidated == []
    assert toasts == []


def test_update_without_resource_is_ignored(cache, toasts):
    MessageRouter(cache, toasts.append).dispatch(_update(action="create"))

    assert cache.invalidated == []
    assert toasts == []


def test_update_without_action_invalidates_but_no_toast(cache, toasts):
    MessageRouter(cache, toasts.append).dispatch(_update(resource="suppliers"))

    assert cache.invalidated == ["/api/suppliers", DASHBOARD_STATS_KEY]
    assert toasts == []


def test_burst_produces_one_toast_per_message(cache, toasts):
    router = MessageRouter(cache, toasts.append)
    for _ in range(3):
        router.dispatch(_update(resource="transactions", action="create"))

    assert [t.description for t in toasts] == ["Transaksi telah ditambahkan"] * 3


def test_inbound_message_reads_camel_case_client_id():
    msg = InboundMessage.model_validate_json(
        '{"type": "connected", "clientId": "client_1_abc", "extra": true}'
    )
    assert msg.client_id == "client_1_abc"


@pytest.mark.parametrize("raw,expected", [
    ("7", "7"),
    ("true", "true"),
    ('"update"', "update"),
    ("null", None),
])
def test_inbound_action_coerced_to_text(raw, expected):
    msg = InboundMessage.model_validate_json(
        f'{{"type": "data_update", "resource": "roles", "action": {raw}}}'
    )
    assert msg.action == expected

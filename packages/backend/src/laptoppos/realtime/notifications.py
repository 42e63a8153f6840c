"""Toast notifications for pushed changes.

Learn: Labels are Indonesian because that is the language of the shop UI.
Unknown resources and actions fall back to the raw string rather than
being dropped, so a new resource still produces a (less pretty) toast.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from laptoppos.config import settings

RESOURCE_LABELS: dict[str, str] = {
    "users": "User",
    "customers": "Customer",
    "products": "Produk",
    "service-tickets": "Tiket Servis",
    "suppliers": "Supplier",
    "transactions": "Transaksi",
    "warranty-claims": "Garansi",
    "roles": "Role",
}

ACTION_LABELS: dict[str, str] = {
    "create": "ditambahkan",
    "update": "diperbarui",
    "delete": "dihapus",
}

DATA_UPDATED_TITLE = "Data Diperbarui"
CONNECTION_LOST_TITLE = "Koneksi Real-time Terputus"
CONNECTION_LOST_DESCRIPTION = (
    "Pembaruan otomatis berhenti. Muat ulang halaman untuk menyambung kembali."
)


@dataclass(frozen=True)
class Toast:
    """One transient message for the notification surface."""
    title: str
    description: str
    duration_ms: int = 3000
    variant: str = "default"


# Anything that can display a Toast (UI bridge, CLI printer, test recorder)
Notifier = Callable[[Toast], None]


def describe_change(resource: str, action: str) -> str:
    """'products', 'create' → 'Produk telah ditambahkan'."""
    resource_label = RESOURCE_LABELS.get(resource, resource)
    action_label = ACTION_LABELS.get(action, action)
    return f"{resource_label} telah {action_label}"


def notify_data_update(
    notifier: Notifier,
    resource: str,
    action: str,
    duration_ms: Optional[int] = None,
) -> Toast:
    toast = Toast(
        title=DATA_UPDATED_TITLE,
        description=describe_change(resource, action),
        duration_ms=settings.toast_duration_ms if duration_ms is None else duration_ms,
    )
    notifier(toast)
    return toast


def notify_connection_lost(notifier: Notifier) -> Toast:
    """Tell the user live updates have stopped for good."""
    toast = Toast(
        title=CONNECTION_LOST_TITLE,
        description=CONNECTION_LOST_DESCRIPTION,
        duration_ms=settings.toast_duration_ms,
        variant="destructive",
    )
    notifier(toast)
    return toast

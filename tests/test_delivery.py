from pathlib import Path

import pytest

from htmlpdf_converter.delivery import DownloadDelivery, FileDelivery
from htmlpdf_converter.errors import DeliveryError, Stage


def test_file_delivery_overwrites_target(tmp_path: Path) -> None:
    target = tmp_path / "out" / "doc.pdf"
    delivery = FileDelivery()
    assert delivery.deliver(b"first", target) == target
    delivery.deliver(b"second", target)
    assert target.read_bytes() == b"second"


def test_file_delivery_wraps_os_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(DeliveryError) as excinfo:
        FileDelivery().deliver(b"data", blocker / "doc.pdf")
    assert excinfo.value.stage is Stage.DELIVERING
    assert excinfo.value.code == "DELIVERY_FAILED"


def test_download_delivery_sanitizes_and_deduplicates(tmp_path: Path) -> None:
    delivery = DownloadDelivery(tmp_path / "downloads")
    first = delivery.deliver(b"1", "My Report")
    second = delivery.deliver(b"2", "My Report.pdf")
    assert first.name == "My Report.pdf"
    assert second.name == "My Report (1).pdf"
    assert first.read_bytes() == b"1"
    assert second.read_bytes() == b"2"

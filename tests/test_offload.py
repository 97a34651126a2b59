from decimal import Decimal

import pytest
from sqlalchemy import select

from app.constants.error_codes import ErrorCode
from app.core.exceptions import ConflictError, ValidationError
from app.models.enums.offload_type import OffloadType
from app.models.enums.shipment_status import ShipmentStatus
from app.models.operations.bag_models import BagRow
from app.schemas.operations.bag_schemas import BagAssign
from app.schemas.operations.offload_schemas import AwbOffloadRequest, RunOffloadRequest
from app.schemas.operations.shipment_schemas import DataLockRequest
from app.services.operations.bag_service import assign_to_bag, finalize_bag, get_bag_details
from app.services.operations.offload_service import offload_awb, offload_run, list_offloads
from app.services.operations.run_service import get_run_summary
from app.services.operations.shipment_service import get_shipment_details, set_data_lock

from tests.fakes import RecordingNotifier


async def bag(db, awb_no, bag_no="B1", run_no="R100"):
    return await assign_to_bag(db, BagAssign(awb_no=awb_no, bag_no=bag_no, run_no=run_no), "tester")


@pytest.fixture
async def loaded_run(db, make_account, make_run, book):
    await make_account()
    await make_run("R100")
    for awb, weight in (("AWB1", "4"), ("AWB2", "3"), ("AWB3", "2")):
        await book(awb, actual_weight=Decimal(weight))
        await bag(db, awb)


async def test_awb_offload_keeps_bag_history(db, loaded_run, notifier):
    record, warnings = await offload_awb(
        db,
        AwbOffloadRequest(awb_no="AWB2", reason="Space constraint"),
        "tester",
        notifier=notifier,
    )

    assert record.offload_type == OffloadType.awb
    assert record.run_no == "R100"
    assert record.bag_no == "B1"
    assert warnings == []
    assert notifier.events == []

    shipment = await get_shipment_details(db, "AWB2")
    assert shipment.status == ShipmentStatus.offloaded
    assert shipment.run_no is None and shipment.bag_no is None

    out = await get_bag_details(db, "B1")
    assert out.no_of_awb == 2
    assert out.bag_weight == Decimal("6.000")

    history = (await db.execute(select(BagRow).where(BagRow.awb_no == "AWB2"))).scalars().all()
    assert len(history) == 1 and history[0].offloaded_at is not None


async def test_offloaded_shipment_can_be_bagged_again(db, loaded_run, make_run, notifier):
    await offload_awb(db, AwbOffloadRequest(awb_no="AWB1", reason="Late"), "tester", notifier=notifier)
    await make_run("R200")

    out = await bag(db, "AWB1", bag_no="B7", run_no="R200")

    assert out.no_of_awb == 1
    assert (await get_shipment_details(db, "AWB1")).status == ShipmentStatus.bagged


async def test_run_offload_with_subset(db, loaded_run, notifier):
    records, _ = await offload_run(
        db,
        RunOffloadRequest(run_no="R100", reason="Flight cancelled", awb_nos=["awb1", "AWB3"]),
        "tester",
        notifier=notifier,
    )

    assert [r.awb_no for r in records] == ["AWB1", "AWB3"]
    assert all(r.offload_type == OffloadType.run for r in records)
    assert (await get_shipment_details(db, "AWB2")).status == ShipmentStatus.bagged
    assert len(await list_offloads(db, run_no="R100")) == 2


async def test_run_offload_rejects_foreign_awb_without_changes(db, loaded_run, book, notifier):
    await book("AWB8")

    with pytest.raises(ValidationError) as exc:
        await offload_run(
            db,
            RunOffloadRequest(run_no="R100", reason="x", awb_nos=["AWB1", "AWB8"]),
            "tester",
            notifier=notifier,
        )
    assert exc.value.error_code == ErrorCode.SHIPMENT_NOT_BAGGED
    assert (await get_shipment_details(db, "AWB1")).status == ShipmentStatus.bagged


async def test_whole_run_offload_from_finalized_bag(db, loaded_run, notifier):
    await finalize_bag(db, "B1", "tester", notifier=notifier)

    records, _ = await offload_run(
        db, RunOffloadRequest(run_no="R100", reason="Aircraft change"), "tester", notifier=notifier
    )

    assert len(records) == 3
    statuses = [(await get_shipment_details(db, awb)).status for awb in ("AWB1", "AWB2", "AWB3")]
    assert statuses == [ShipmentStatus.offloaded] * 3

    # a sealed bag keeps the totals it was finalized with
    out = await get_bag_details(db, "B1")
    assert out.is_final is True
    assert out.no_of_awb == 3
    assert out.bag_weight == Decimal("9.000")
    assert out.rows == []

    summary = await get_run_summary(db, "R100")
    assert summary.no_of_awb == 3
    assert summary.run_weight == Decimal("9.000")


async def test_offload_before_finalize_is_left_out_of_sealed_totals(db, loaded_run, notifier):
    await offload_awb(db, AwbOffloadRequest(awb_no="AWB1", reason="Late"), "tester", notifier=notifier)
    await finalize_bag(db, "B1", "tester", notifier=notifier)
    await offload_awb(db, AwbOffloadRequest(awb_no="AWB3", reason="Damaged"), "tester", notifier=notifier)

    out = await get_bag_details(db, "B1")
    assert out.no_of_awb == 2
    assert out.bag_weight == Decimal("5.000")
    assert [r.awb_no for r in out.rows] == ["AWB2"]


async def test_locked_shipment_cannot_be_offloaded(db, loaded_run, notifier):
    await set_data_lock(db, DataLockRequest(awb_no="AWB1"), "tester")

    with pytest.raises(ConflictError) as exc:
        await offload_awb(db, AwbOffloadRequest(awb_no="AWB1", reason="x"), "tester", notifier=notifier)
    assert exc.value.error_code == ErrorCode.SHIPMENT_LOCKED


async def test_unbagged_shipment_cannot_be_offloaded(db, loaded_run, book, notifier):
    await book("AWB9")

    with pytest.raises(ValidationError) as exc:
        await offload_awb(db, AwbOffloadRequest(awb_no="AWB9", reason="x"), "tester", notifier=notifier)
    assert exc.value.error_code == ErrorCode.SHIPMENT_NOT_BAGGED


async def test_customer_alert_failure_does_not_undo_offload(db, loaded_run):
    record, warnings = await offload_awb(
        db,
        AwbOffloadRequest(awb_no="AWB3", reason="Damaged", alert_customer=True),
        "tester",
        notifier=RecordingNotifier(fail=True),
    )

    assert record.alert_customer is True
    assert len(warnings) == 1
    assert (await get_shipment_details(db, "AWB3")).status == ShipmentStatus.offloaded

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from app.constants.error_codes import ErrorCode
from app.core.exceptions import ConflictError, ValidationError
from app.models.enums.shipment_status import ShipmentStatus
from app.models.operations.lock_transition_models import LockTransition
from app.schemas.operations.bag_schemas import BagAssign
from app.schemas.operations.run_schemas import RunStatusUpdate
from app.services.operations.bag_service import assign_to_bag, finalize_bag, get_bag_details
from app.services.operations.manifest_service import create_manifest, mark_delivered
from app.services.operations.run_service import update_run_status, get_run_summary
from app.services.operations.shipment_service import get_shipment_details


async def bag(db, awb_no, bag_no="B1", run_no="R100", weight=None):
    return await assign_to_bag(
        db,
        BagAssign(awb_no=awb_no, bag_no=bag_no, run_no=run_no, weight=weight),
        "tester",
    )


@pytest.fixture
async def run_with_shipments(make_account, make_run, book):
    await make_account()
    await make_run("R100")
    await book("AWB1", actual_weight=Decimal("5"), volumetric_weight=Decimal("4"))
    await book("AWB2", actual_weight=Decimal("2"), volumetric_weight=Decimal("6"))
    await book("AWB3", actual_weight=Decimal("1"))


async def test_finalized_bag_rejects_new_members(db, run_with_shipments, notifier):
    await bag(db, "AWB1")
    filled = await bag(db, "AWB2")
    assert filled.no_of_awb == 2
    assert filled.bag_weight == Decimal("11.000")

    finalized, warnings = await finalize_bag(db, "B1", "tester", notifier=notifier)
    assert finalized.is_final is True
    assert warnings == []

    with pytest.raises(ConflictError) as exc:
        await bag(db, "AWB3")
    assert exc.value.error_code == ErrorCode.BAG_ALREADY_FINALIZED

    untouched = await get_shipment_details(db, "AWB3")
    assert untouched.status == ShipmentStatus.unassigned
    assert untouched.bag_no is None
    assert (await get_bag_details(db, "B1")).no_of_awb == 2


async def test_finalize_is_idempotent(db, run_with_shipments, notifier):
    await bag(db, "AWB1")

    first, _ = await finalize_bag(db, "B1", "tester", notifier=notifier)
    second, warnings = await finalize_bag(db, "B1", "tester", notifier=notifier)

    assert first.is_final and second.is_final
    assert second.finalized_at == first.finalized_at
    assert warnings == []
    transitions = await db.scalar(
        select(func.count(LockTransition.id)).where(LockTransition.reference == "B1")
    )
    assert transitions == 1
    assert [event for event, _ in notifier.events if event == "bag.finalized"] == ["bag.finalized"]


async def test_shipment_cannot_leave_a_finalized_bag(db, run_with_shipments, notifier):
    await bag(db, "AWB1")
    await finalize_bag(db, "B1", "tester", notifier=notifier)

    with pytest.raises(ConflictError) as exc:
        await bag(db, "AWB1", bag_no="B2")
    assert exc.value.error_code == ErrorCode.BAG_ALREADY_FINALIZED
    assert (await get_shipment_details(db, "AWB1")).bag_no == "B1"


async def test_moving_between_open_bags_and_empty_bag_cannot_finalize(db, run_with_shipments, notifier):
    await bag(db, "AWB1", bag_no="B1")
    moved = await bag(db, "AWB1", bag_no="B2")
    assert [r.awb_no for r in moved.rows] == ["AWB1"]

    again = await bag(db, "AWB1", bag_no="B2")
    assert again.no_of_awb == 1

    with pytest.raises(ValidationError) as exc:
        await finalize_bag(db, "B1", "tester", notifier=notifier)
    assert exc.value.error_code == ErrorCode.BAG_EMPTY


async def test_held_shipment_cannot_be_bagged(db, make_account, make_run, book):
    await make_account(credit_limit="100")
    await make_run("R100")
    await book("AWB9", basic="500")

    with pytest.raises(ConflictError) as exc:
        await bag(db, "AWB9")
    assert exc.value.error_code == ErrorCode.SHIPMENT_ON_HOLD


async def test_bag_belongs_to_one_run(db, run_with_shipments, make_run):
    await make_run("R200")
    await bag(db, "AWB1", run_no="R100")

    with pytest.raises(ValidationError) as exc:
        await bag(db, "AWB2", run_no="R200")
    assert exc.value.error_code == ErrorCode.BAG_RUN_MISMATCH


async def test_explicit_weight_overrides_chargeable_weight(db, run_with_shipments):
    out = await bag(db, "AWB1", weight=Decimal("7.25"))
    assert out.bag_weight == Decimal("7.250")
    assert out.chargeable_weight == Decimal("5.000")


async def test_run_status_moves_forward_only(db, run_with_shipments, notifier):
    await bag(db, "AWB1")

    with pytest.raises(ConflictError) as exc:
        await update_run_status(db, "R100", RunStatusUpdate(status="Advanced Bagging"), "tester")
    assert exc.value.error_code == ErrorCode.BAGS_NOT_FINALIZED

    await finalize_bag(db, "B1", "tester", notifier=notifier)
    run = await update_run_status(db, "R100", RunStatusUpdate(status="Advanced Bagging"), "tester")
    assert run.status_step == 1
    assert [h.status for h in run.status_history] == ["Run Created", "Advanced Bagging"]

    same = await update_run_status(db, "R100", RunStatusUpdate(status="Advanced Bagging"), "tester")
    assert len(same.status_history) == 2

    with pytest.raises(ConflictError):
        await update_run_status(db, "R100", RunStatusUpdate(status="Run Created"), "tester")

    with pytest.raises(ValidationError) as exc:
        await update_run_status(db, "R100", RunStatusUpdate(status="Teleported"), "tester")
    assert exc.value.error_code == ErrorCode.RUN_INVALID_STATUS


async def test_run_summary_totals_come_from_bags(db, run_with_shipments):
    await bag(db, "AWB1", bag_no="B1")
    await bag(db, "AWB2", bag_no="B1")
    await bag(db, "AWB3", bag_no="B2", weight=Decimal("1.5"))

    summary = await get_run_summary(db, "R100")

    assert summary.no_of_bags == 2
    assert summary.no_of_awb == 3
    assert summary.run_weight == Decimal("12.500")
    assert summary.chargeable_weight == Decimal("12.000")
    assert summary.all_bags_final is False


async def test_manifest_requires_final_bags_and_is_idempotent(db, run_with_shipments, notifier):
    await bag(db, "AWB1")
    await bag(db, "AWB2")

    with pytest.raises(ConflictError) as exc:
        await create_manifest(db, "R100", "tester")
    assert exc.value.error_code == ErrorCode.BAGS_NOT_FINALIZED

    await finalize_bag(db, "B1", "tester", notifier=notifier)
    manifest = await create_manifest(db, "R100", "tester")

    assert manifest.manifest_no == f"MF-{date.today():%Y%m%d}-0001"
    assert manifest.no_of_bags == 1
    assert manifest.awb_nos == ["AWB1", "AWB2"]
    assert manifest.total_weight == Decimal("11.000")

    again = await create_manifest(db, "R100", "tester")
    assert again.manifest_no == manifest.manifest_no

    shipment = await get_shipment_details(db, "AWB1")
    assert shipment.status == ShipmentStatus.manifested
    assert shipment.manifest_no == manifest.manifest_no


async def test_only_manifested_shipments_are_delivered(db, run_with_shipments, notifier):
    await bag(db, "AWB1")
    await finalize_bag(db, "B1", "tester", notifier=notifier)
    await create_manifest(db, "R100", "tester")

    delivered = await mark_delivered(db, "AWB1", "tester")
    assert delivered.status == ShipmentStatus.delivered
    assert (await mark_delivered(db, "AWB1", "tester")).status == ShipmentStatus.delivered

    with pytest.raises(ConflictError) as exc:
        await mark_delivered(db, "AWB3", "tester")
    assert exc.value.error_code == ErrorCode.SHIPMENT_INVALID_STATE

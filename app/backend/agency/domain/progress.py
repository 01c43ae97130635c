"""Milestone and project progress / payment summaries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import assert_never

from agency.domain.enums import PaymentStatus, TaskStatus
from agency.domain.records import MilestoneRecord, TaskRecord

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
_WHOLE = Decimal("1")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


@dataclass(frozen=True, slots=True)
class MilestoneProgress:
    total_tasks: int
    completed_tasks: int
    progress_percent: int


@dataclass(frozen=True, slots=True)
class ProjectSummary:
    total_milestones: int
    total_tasks: int
    completed_tasks: int
    overall_progress: int
    total_price: Decimal
    paid_amount: Decimal
    unpaid_amount: Decimal
    paid_milestones: int


def progress_percent(completed: int, total: int) -> int:
    """Share of ``completed`` in ``total`` as a whole percent, rounded half-up.

    Returns 0 for an empty total.
    """

    if total == 0:
        return 0
    ratio = Decimal(completed * 100) / Decimal(total)
    return int(ratio.quantize(_WHOLE, rounding=ROUND_HALF_UP))


def _is_completed(task: TaskRecord) -> bool:
    return task.status is TaskStatus.APPROVED


def _count_completed(tasks: Iterable[TaskRecord]) -> int:
    return sum(1 for task in tasks if _is_completed(task))


def milestone_paid_amount(milestone: MilestoneRecord) -> Decimal:
    """Amount actually received for a milestone.

    PAID counts the full price even when ``payment_amount`` is unset. A PARTIAL amount
    is used as recorded, including values above the price.
    """

    payment_status = milestone.payment_status
    if payment_status is PaymentStatus.PAID:
        return milestone.price if milestone.price is not None else ZERO
    if payment_status is PaymentStatus.PARTIAL:
        return milestone.payment_amount if milestone.payment_amount is not None else ZERO
    if payment_status is PaymentStatus.UNPAID:
        return ZERO
    assert_never(payment_status)


def compute_milestone_progress(milestone: MilestoneRecord) -> MilestoneProgress:
    total = len(milestone.tasks)
    completed = _count_completed(milestone.tasks)
    return MilestoneProgress(
        total_tasks=total,
        completed_tasks=completed,
        progress_percent=progress_percent(completed, total),
    )


def compute_project_summary(milestones: Sequence[MilestoneRecord]) -> ProjectSummary:
    """Roll milestones up into a project summary.

    Overall progress is weighted per task across the flattened task set, so a
    milestone with one task weighs less than one with fifty.
    """

    total_tasks = 0
    completed_tasks = 0
    total_price = ZERO
    paid_amount = ZERO
    paid_milestones = 0

    for milestone in milestones:
        total_tasks += len(milestone.tasks)
        completed_tasks += _count_completed(milestone.tasks)
        if milestone.price is not None:
            total_price += milestone.price
        paid_amount += milestone_paid_amount(milestone)
        if milestone.payment_status is PaymentStatus.PAID:
            paid_milestones += 1

    total_price = _q2(total_price)
    paid_amount = _q2(paid_amount)
    return ProjectSummary(
        total_milestones=len(milestones),
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        overall_progress=progress_percent(completed_tasks, total_tasks),
        total_price=total_price,
        paid_amount=paid_amount,
        unpaid_amount=_q2(total_price - paid_amount),
        paid_milestones=paid_milestones,
    )


def is_milestone_complete(milestone: MilestoneRecord) -> bool:
    """A milestone is complete once it has tasks and every one is approved."""

    if not milestone.tasks:
        return False
    return all(_is_completed(task) for task in milestone.tasks)


def is_project_complete(milestones: Sequence[MilestoneRecord]) -> bool:
    """Every milestone with tasks is complete and at least one task exists.

    Milestones without tasks do not block completion.
    """

    has_tasks = False
    for milestone in milestones:
        if not milestone.tasks:
            continue
        has_tasks = True
        if not is_milestone_complete(milestone):
            return False
    return has_tasks


def filter_for_client_visibility(milestones: Iterable[MilestoneRecord]) -> list[MilestoneRecord]:
    """Keep visible milestones and, inside them, only visible tasks."""

    return [
        replace(milestone, tasks=tuple(task for task in milestone.tasks if task.is_visible))
        for milestone in milestones
        if milestone.is_visible
    ]

"""
Worker recommendation for maintenance requests.

Scores, confidence and reasoning are explanatory: only the score and the
eligibility check affect which workers are returned.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, List, Optional

from rental_repairs.config.settings import SchedulingSettings, get_settings
from rental_repairs.core.logging import get_logger
from rental_repairs.models.request import MaintenanceRequest
from rental_repairs.models.worker import Worker
from rental_repairs.repositories.interfaces import WorkerStore
from rental_repairs.schemas.recommendation import WorkerRecommendation
from rental_repairs.services.scheduling.specialization import SpecializationMatcher
from rental_repairs.services.workflow.status_policy import StatusTransitionPolicy, status_policy
from rental_repairs.utils.date_utils import Clock, format_date, now_utc

logger = get_logger(__name__)

__all__ = ["AssignmentRecommendationEngine"]

BASE_SCORE = 100
EXACT_MATCH_BONUS = 200
COVERAGE_BONUS = 100
AVAILABLE_TOMORROW_BONUS = 50
MAX_WORKLOAD_BONUS = 100
WORKLOAD_PENALTY_PER_JOB = 20
EMERGENCY_BONUS = 30
LIGHT_WORKLOAD_LIMIT = 2

INACTIVE_REASON = "Worker is inactive"


class AssignmentRecommendationEngine:
    """Ranks candidate workers for a request."""

    def __init__(
        self,
        matcher: Optional[SpecializationMatcher] = None,
        settings: Optional[SchedulingSettings] = None,
        statuses: Optional[StatusTransitionPolicy] = None,
        clock: Clock = now_utc,
    ):
        self.matcher = matcher or SpecializationMatcher()
        self.settings = settings or get_settings().scheduling
        self.statuses = statuses or status_policy
        self._clock = clock

    def _today(self) -> date:
        return self._clock().date()

    def _available_tomorrow(self, worker: Worker) -> bool:
        return worker.is_available(self._today() + timedelta(days=1))

    def _weekly_workload(self, worker: Worker) -> int:
        return worker.upcoming_workload(self._today(), self.settings.WORKLOAD_WINDOW_DAYS)

    # ------------------------------------------------------------------
    # Per-worker evaluation
    # ------------------------------------------------------------------

    def is_overloaded(self, worker: Worker) -> bool:
        return worker.active_assignment_count > self.settings.OVERLOAD_THRESHOLD

    def is_emergency_capable(self, worker: Worker, request: MaintenanceRequest) -> bool:
        return worker.is_active and self.matcher.can_handle(worker.specialization, request.required_specialization)

    def score_for_request(self, worker: Worker, request: MaintenanceRequest) -> int:
        if not worker.is_active:
            return 0

        required = request.required_specialization
        score = BASE_SCORE
        if self.matcher.is_exact_match(worker.specialization, required):
            score += EXACT_MATCH_BONUS
        elif self.matcher.can_handle(worker.specialization, required):
            score += COVERAGE_BONUS

        if self._available_tomorrow(worker):
            score += AVAILABLE_TOMORROW_BONUS

        workload = self._weekly_workload(worker)
        score += max(0, MAX_WORKLOAD_BONUS - workload * WORKLOAD_PENALTY_PER_JOB)

        if request.is_emergency and self.is_emergency_capable(worker, request):
            score += EMERGENCY_BONUS

        return score

    def can_be_assigned_to_request(self, worker: Worker, request: MaintenanceRequest) -> bool:
        return (
            worker.is_active
            and self.statuses.can_schedule(request.status)
            and self.matcher.can_handle(worker.specialization, request.required_specialization)
            and not self.is_overloaded(worker)
        )

    def confidence(self, worker: Worker, request: MaintenanceRequest) -> float:
        if not worker.is_active:
            return 0.0

        required = request.required_specialization
        if self.matcher.is_exact_match(worker.specialization, required):
            return 0.95 if request.is_emergency else 0.90
        if self.matcher.can_handle(worker.specialization, required):
            return 0.80 if request.is_emergency else 0.70
        return 0.0

    def reasoning_text(self, worker: Worker, request: MaintenanceRequest) -> str:
        if not worker.is_active:
            return INACTIVE_REASON

        required = request.required_specialization
        factors = []
        if self.matcher.is_exact_match(worker.specialization, required):
            factors.append(f"Has exact {required.value} specialization")
        elif self.matcher.can_handle(worker.specialization, required):
            factors.append(f"General maintenance coverage for {required.value} work")

        if self._available_tomorrow(worker):
            factors.append("Available for immediate assignment")
        if request.is_emergency and self.is_emergency_capable(worker, request):
            factors.append("Qualified for emergency requests")
        if self._weekly_workload(worker) <= LIGHT_WORKLOAD_LIMIT:
            factors.append("Light current workload")

        return "; ".join(factors) if factors else "Meets basic assignment requirements"

    def estimated_completion_hours(self, worker: Worker, request: MaintenanceRequest) -> int:
        if not worker.is_active:
            return 0
        if request.is_emergency:
            return 2
        if self.matcher.is_exact_match(worker.specialization, request.required_specialization):
            return 2
        return 3

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def recommend(
        self,
        request: MaintenanceRequest,
        candidates: Iterable[Worker],
        top_n: Optional[int] = None,
    ) -> List[WorkerRecommendation]:
        limit = self.settings.RECOMMENDATION_LIMIT if top_n is None else top_n
        eligible = [w for w in candidates if self.can_be_assigned_to_request(w, request)]

        scored = sorted(
            ((self.score_for_request(w, request), w) for w in eligible),
            key=lambda pair: (-pair[0], pair[1].ranking_score(self._today()), pair[1].email),
        )

        recommendations = [self._package(worker, request, score) for score, worker in scored[:limit]]
        logger.debug(
            f"Recommended {len(recommendations)} of {len(eligible)} eligible workers for {request.code}",
            extra={"request_id": request.request_id},
        )
        return recommendations

    def recommend_from_store(
        self,
        request: MaintenanceRequest,
        workers: WorkerStore,
        top_n: Optional[int] = None,
    ) -> List[WorkerRecommendation]:
        return self.recommend(request, workers.list_active_workers(), top_n)

    def best_worker(self, request: MaintenanceRequest, candidates: Iterable[Worker]) -> Optional[Worker]:
        candidates = list(candidates)
        top = self.recommend(request, candidates, top_n=1)
        if not top:
            return None
        return next(w for w in candidates if w.email == top[0].worker_email)

    def _package(self, worker: Worker, request: MaintenanceRequest, score: int) -> WorkerRecommendation:
        next_free = worker.next_fully_available_date(self._today())
        return WorkerRecommendation(
            worker_email=worker.email,
            worker_name=worker.full_name,
            specialization=worker.specialization.value,
            score=score,
            confidence=self.confidence(worker, request),
            reasoning=self.reasoning_text(worker, request),
            estimated_completion_hours=self.estimated_completion_hours(worker, request),
            next_available_date=format_date(next_free) if next_free else None,
            is_emergency_capable=self.is_emergency_capable(worker, request),
        )

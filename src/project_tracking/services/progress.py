from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from project_tracking.services.fields import (
    FieldClassification,
    classify_fields,
    executed_field_for,
)
from project_tracking.services.records import (
    clamp,
    has_text,
    is_checked,
    normalize_key,
    record_id,
    round_half_up,
)

STAGE_KEYS = ("stage1", "stage2", "stage3")

PAIRED_PART_WEIGHT = 0.5

BAND_ALL = "all"
BAND_PLANNING = "planning"
BAND_IN_PROGRESS = "in_progress"
BAND_NEAR_COMPLETION = "near_completion"

PLANNING_UPPER = 30
NEAR_COMPLETION_LOWER = 90
LOW_PROGRESS_WARNING = 80


@dataclass(frozen=True)
class StageScore:
    total: float
    achieved: float
    percent: int
    classification: FieldClassification


@dataclass(frozen=True)
class ProjectProgress:
    overall: int = 0
    stage1: int = 0
    stage2: int = 0
    stage3: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "overall": self.overall,
            "stage1": self.stage1,
            "stage2": self.stage2,
            "stage3": self.stage3,
        }


@dataclass(frozen=True)
class CompletionCheck:
    completable: bool
    progress: ProjectProgress
    reasons: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


def stage_breakdown(stage: Any) -> StageScore:
    classification = classify_fields(stage)
    if not classification.scorable_count:
        return StageScore(0.0, 0.0, 0, classification)

    total = 0.0
    achieved = 0.0

    for date_field in classification.paired_date_fields:
        total += 1.0
        if has_text(stage.get(date_field)):
            achieved += PAIRED_PART_WEIGHT
        if is_checked(stage.get(executed_field_for(date_field))):
            achieved += PAIRED_PART_WEIGHT

    for name in classification.plain_fields:
        total += 1.0
        if has_text(stage.get(name)):
            achieved += 1.0

    for name in classification.standalone_checkbox_fields:
        total += 1.0
        if is_checked(stage.get(name)):
            achieved += 1.0

    percent = round_half_up(clamp(achieved / total * 100))
    return StageScore(total, achieved, percent, classification)


def score_stage(stage: Any) -> int:
    """Completion percentage (0-100) of one stage record."""
    return stage_breakdown(stage).percent


def _is_scorable_project(project: Any) -> bool:
    if not isinstance(project, Mapping) or not record_id(project):
        return False
    return any(isinstance(project.get(key), Mapping) for key in STAGE_KEYS)


def score_project(project: Any) -> ProjectProgress:
    """Per-stage percentages and their unweighted mean.

    Each stage counts as one third regardless of how many fields it has.
    Records without identity or without any stage mapping score all-zero.
    """
    if not _is_scorable_project(project):
        return ProjectProgress()

    stage1, stage2, stage3 = (score_stage(project.get(key)) for key in STAGE_KEYS)
    overall = round_half_up(clamp((stage1 + stage2 + stage3) / 3))
    return ProjectProgress(overall=overall, stage1=stage1, stage2=stage2, stage3=stage3)


def progress_band(overall: int) -> str:
    if overall < PLANNING_UPPER:
        return BAND_PLANNING
    if overall < NEAR_COMPLETION_LOWER:
        return BAND_IN_PROGRESS
    return BAND_NEAR_COMPLETION


def filter_by_band(projects: Iterable[Any], band: str) -> list[Any]:
    if band == BAND_ALL:
        return list(projects)
    return [
        project
        for project in projects
        if progress_band(score_project(project).overall) == band
    ]


def _stage_flag(project: Mapping[str, Any], stage_key: str, name: str) -> Any:
    stage = project.get(stage_key)
    if not isinstance(stage, Mapping):
        return None
    return stage.get(name)


def count_open_feedback(project_id: str, opinions: Iterable[Any]) -> int:
    if not project_id:
        return 0
    count = 0
    for opinion in opinions:
        if not isinstance(opinion, Mapping):
            continue
        ref = opinion.get("projectId") or opinion.get("project_id")
        if str(ref or "") != project_id:
            continue
        if normalize_key(opinion.get("status")) == "open":
            count += 1
    return count


def check_completion(project: Any, opinions: Iterable[Any] = ()) -> CompletionCheck:
    """Archive readiness of a project.

    A project is completable once every stage is at 100%, or once mass
    production or quality approval has been executed.
    """
    progress = score_project(project)
    if not isinstance(project, Mapping):
        return CompletionCheck(completable=False, progress=progress)

    reasons: list[str] = []
    warnings: list[str] = []

    mass_production_done = is_checked(
        _stage_flag(project, "stage1", "massProductionDateExecuted")
    )
    quality_approved = is_checked(
        _stage_flag(project, "stage3", "qualityApprovalDateExecuted")
    )

    if progress.overall == 100:
        reasons.append("all_stages_complete")
    if mass_production_done:
        reasons.append("mass_production_started")
    if quality_approved:
        reasons.append("quality_approved")

    if progress.overall < LOW_PROGRESS_WARNING and not mass_production_done:
        warnings.append("low_progress")
    if not has_text(_stage_flag(project, "stage1", "massProductionDate")):
        warnings.append("missing_mass_production_date")

    open_count = count_open_feedback(record_id(project), opinions)
    if open_count:
        warnings.append(f"open_feedback:{open_count}")

    return CompletionCheck(
        completable=bool(reasons),
        progress=progress,
        reasons=tuple(reasons),
        warnings=tuple(warnings),
    )

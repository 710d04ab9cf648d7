"""
Diagram Statistics Service
==========================
Per-diagram KPIs and item analysis over historical test sessions:
- KPIs (exam average, learning accuracy, mastery / at-risk rates, hint usage)
- Daily trends, exam histogram, speed vs accuracy scatter
- Hotspots and at-risk students
- Item quality (percent correct, point-biserial discrimination, claims, ratings)
- Distractor breakdown by score quartile
- Learning curves, KR-20 reliability and drift between halves of the period

Everything is computed in memory from the sessions loaded for the diagram.
"""

from collections import Counter
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from erplay.core.exceptions import DiagramNotFoundError
from erplay.core.logging_config import logger
from erplay.models.claim import Claim, ClaimStatus
from erplay.models.diagram import Diagram
from erplay.models.question import Question
from erplay.models.rating import Rating
from erplay.models.test_session import TestMode, TestResult, TestSession
from erplay.utils.psychometrics import (
    avg,
    group_by,
    is_finite_num,
    js_round,
    kr20,
    median,
    modal_value,
    num,
    pct_num,
    point_biserial,
    quantile,
    ratio_pct,
    round1,
    round2,
    variance,
)


def _question_title(results: List[TestResult], question_id: str) -> str:
    for r in results:
        if r.question is not None and r.question.prompt:
            return r.question.prompt
    return f"Question {question_id}"


def _most_common_wrong(results: List[TestResult]) -> Optional[str]:
    counts: Counter = Counter()
    for r in results:
        if r.is_correct is False and r.selected_index is not None and isinstance(r.options_snapshot, list):
            if 0 <= r.selected_index < len(r.options_snapshot):
                text = r.options_snapshot[r.selected_index]
                if text:
                    counts[text] += 1
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _session_accuracy_pct(session: TestSession) -> float:
    return ratio_pct(session.correct_count, session.total_questions)


class DiagramStatsService:
    """Psychometric statistics for a single diagram"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_stats(
        self,
        diagram_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, Any]:
        diagram = await self.db.get(Diagram, diagram_id)
        if not diagram:
            raise DiagramNotFoundError()

        start = datetime.combine(date_from, time.min) if date_from else None
        end = datetime.combine(date_to, time.max) if date_to else None

        sessions = await self._load_sessions(diagram_id, start, end)
        claims_total, claims_approved = await self._claim_counts(diagram_id, start, end)
        ratings = await self._average_ratings(diagram_id)

        stats = compute_diagram_stats(sessions, claims_total, claims_approved, ratings)
        logger.debug(
            f"[Stats] Diagram {diagram_id}: {len(sessions)} sessions",
            extra={"event_type": "diagram_stats", "sessions": len(sessions)},
        )
        return stats

    async def _load_sessions(self, diagram_id: str, start, end) -> List[TestSession]:
        query = (
            select(TestSession)
            .options(
                selectinload(TestSession.user),
                selectinload(TestSession.results).selectinload(TestResult.question),
            )
            .where(TestSession.diagram_id == diagram_id)
        )
        if start is not None:
            query = query.where(TestSession.created_at >= start)
        if end is not None:
            query = query.where(TestSession.created_at <= end)
        result = await self.db.execute(query.order_by(TestSession.created_at.asc()))
        return list(result.scalars().all())

    async def _claim_counts(self, diagram_id: str, start, end):
        query = (
            select(
                Question.id,
                func.count(Claim.id),
                func.sum(case((Claim.status == ClaimStatus.APPROVED, 1), else_=0)),
            )
            .select_from(Claim)
            .join(Question, Claim.question_id == Question.id)
            .where(Question.diagram_id == diagram_id)
            .group_by(Question.id)
        )
        if start is not None:
            query = query.where(Claim.created_at >= start)
        if end is not None:
            query = query.where(Claim.created_at <= end)

        totals: Dict[str, int] = {}
        approved: Dict[str, int] = {}
        for qid, total, ok in (await self.db.execute(query)).all():
            totals[str(qid)] = int(total or 0)
            approved[str(qid)] = int(ok or 0)
        return totals, approved

    async def _average_ratings(self, diagram_id: str) -> Dict[str, float]:
        query = (
            select(Rating.question_id, func.avg(Rating.rating))
            .join(Question, Rating.question_id == Question.id)
            .where(Question.diagram_id == diagram_id)
            .group_by(Rating.question_id)
        )
        return {str(qid): float(value or 0) for qid, value in (await self.db.execute(query)).all()}


def compute_diagram_stats(
    sessions: List[TestSession],
    claims_total_by_q: Optional[Dict[str, int]] = None,
    claims_approved_by_q: Optional[Dict[str, int]] = None,
    rating_by_q: Optional[Dict[str, float]] = None,
) -> Dict[str, Any]:
    """
    Aggregate every statistic from sessions ordered by creation time.

    Sessions must have ``user`` and ``results`` (with ``question``) loaded.
    """
    claims_total_by_q = claims_total_by_q or {}
    claims_approved_by_q = claims_approved_by_q or {}
    rating_by_q = rating_by_q or {}

    exam_sessions = [s for s in sessions if s.mode == TestMode.EXAM]
    learning_sessions = [s for s in sessions if s.mode == TestMode.LEARNING]

    exam_results = [r for s in exam_sessions for r in s.results]
    learning_results = [r for s in learning_sessions for r in s.results]
    all_results = [r for s in sessions for r in s.results]

    # ---- KPIs ----
    exam_score_avg10 = avg([num(s.score) for s in exam_sessions])
    learning_accuracy_pct = avg([_session_accuracy_pct(s) for s in learning_sessions])
    mastery_rate_pct = (
        len([s for s in exam_sessions if num(s.score) >= 8]) * 100 / len(exam_sessions)
        if exam_sessions else 0
    )
    at_risk_rate_pct = (
        len([s for s in exam_sessions if num(s.score) <= 5]) * 100 / len(exam_sessions)
        if exam_sessions else 0
    )
    median_time_exam = median(num(r.time_spent_seconds) for r in exam_results) or 0
    hint_usage_pct = pct_num(
        len([r for r in learning_results if r.used_hint]),
        max(1, len(learning_results)),
    )

    by_question = group_by(
        [r for r in all_results if r.question_id and r.question is not None],
        lambda r: r.question_id,
    )
    error_agg = []
    for qid, rs in by_question.items():
        wrong = len([r for r in rs if r.is_correct is False])
        error_agg.append({
            "questionId": qid,
            "total": len(rs),
            "errors": wrong,
            "errorRatePct": pct_num(wrong, max(1, len(rs))),
            "medianTime": median(num(r.time_spent_seconds) for r in rs),
            "commonWrongText": _most_common_wrong(rs),
            "title": _question_title(rs, qid),
        })
    top5 = sorted(error_agg, key=lambda e: -e["errorRatePct"])[:5]
    total_errors = sum(e["errors"] for e in error_agg)
    error_concentration = (
        pct_num(sum(e["errors"] for e in top5), total_errors) if total_errors else 0
    )

    hotspots = [
        {
            "questionId": h["questionId"],
            "title": h["title"],
            "errorRatePct": round1(h["errorRatePct"]),
            "medianTimeSec": h["medianTime"],
            "commonWrongText": h["commonWrongText"],
            "attempts": h["total"],
        }
        for h in top5
    ]

    # ---- At-risk students ----
    exams_by_user = group_by(exam_sessions, lambda s: s.user_id)
    risk_students = []
    for uid, items in exams_by_user.items():
        last = max(items, key=lambda s: s.created_at)
        risk_students.append({
            "studentId": uid,
            "name": last.user.name if last.user else None,
            "lastName": last.user.last_name if last.user else None,
            "lastExamScore10": num(last.score),
            "attempts": len(items),
            "lastAttemptAt": last.created_at,
        })
    risk_students = sorted(
        [r for r in risk_students if r["lastExamScore10"] <= 5],
        key=lambda r: r["lastExamScore10"],
    )

    # ---- Practice to exam delta ----
    learning_by_user = group_by(learning_sessions, lambda s: s.user_id)
    deltas = []
    for uid, ex_items in exams_by_user.items():
        le_items = learning_by_user.get(uid) or []
        if not ex_items or not le_items:
            continue
        exam_avg = avg([num(s.score) for s in ex_items])
        practice_avg10 = avg([
            (s.correct_count / s.total_questions if s.total_questions else 0) * 10
            for s in le_items
        ])
        deltas.append(exam_avg - practice_avg10)
    delta_practice_to_exam = round2(avg(deltas)) if deltas else 0

    # ---- Trends per day ----
    trends = []
    for day, items in group_by(sessions, lambda s: s.created_at.date().isoformat()).items():
        exams = [s for s in items if s.mode == TestMode.EXAM]
        learns = [s for s in items if s.mode == TestMode.LEARNING]
        trends.append({
            "date": day,
            "examScorePct": avg([num(s.score) * 10 for s in exams]) if exams else None,
            "learningAccuracyPct": avg([_session_accuracy_pct(s) for s in learns]) if learns else None,
        })
    trends.sort(key=lambda t: t["date"])

    # ---- Histogram ----
    histogram = [{"label": f"{i}-{i + 1}", "count": 0} for i in range(10)]
    for s in exam_sessions:
        bucket = max(0, min(9, int(num(s.score) // 1)))
        histogram[bucket]["count"] += 1

    # ---- Speed vs accuracy ----
    learn_acc_by_user = {
        uid: avg([_session_accuracy_pct(s) for s in items])
        for uid, items in learning_by_user.items()
    }
    time_pool: Dict[str, List[float]] = {}
    for s in exam_sessions:
        time_pool.setdefault(s.user_id, []).extend(
            num(r.time_spent_seconds) for r in s.results
        )
    exam_time_by_user = {uid: median(times) or 0 for uid, times in time_pool.items()}
    user_names = {s.user_id: (s.user.name if s.user else None) for s in sessions}

    scatter_ids = list(dict.fromkeys(list(learn_acc_by_user) + list(exam_time_by_user)))
    scatter = [
        {
            "studentId": uid,
            "name": user_names.get(uid),
            "accuracyPct": learn_acc_by_user.get(uid, 0),
            "timeSecPerQuestion": exam_time_by_user.get(uid, 0),
        }
        for uid in scatter_ids
    ]

    # ---- Item quality ----
    disc_data: Dict[str, List[Dict[str, Any]]] = {}
    for s in exam_sessions:
        rs = [r for r in s.results if r.question_id and r.question is not None]
        total = sum(1 for r in rs if r.is_correct)
        for r in rs:
            correct01 = 1 if r.is_correct else 0
            disc_data.setdefault(r.question_id, []).append({
                "correct01": correct01,
                "totalExcl": total - correct01,
            })

    item_ids = list(dict.fromkeys(list(by_question) + list(disc_data)))
    item_quality = []
    for qid in item_ids:
        rs = by_question.get(qid) or []
        attempts = len(rs)
        correct = len([r for r in rs if r.is_correct is True])
        rows = disc_data.get(qid) or []
        rpb = point_biserial([d["correct01"] for d in rows], [d["totalExcl"] for d in rows])
        median_time = median(num(r.time_spent_seconds) for r in rs)
        claims_total = claims_total_by_q.get(qid, 0)
        claims_approved = claims_approved_by_q.get(qid, 0)
        avg_rating = rating_by_q.get(qid)
        item_quality.append({
            "questionId": qid,
            "title": _question_title(rs, qid),
            "pCorrectPct": round1(pct_num(correct, max(1, attempts))),
            "discrPointBiserial": round2(rpb or 0),
            "medianTimeSec": round2(median_time) if median_time is not None else None,
            "attempts": attempts,
            "claimRatePct": round1(pct_num(claims_total, max(1, attempts))),
            "claimApprovalRatePct": round1(pct_num(claims_approved, claims_total)) if claims_total else None,
            "avgRating": round2(avg_rating) if avg_rating is not None else None,
        })
    item_quality.sort(key=lambda i: i["pCorrectPct"])

    # ---- Distractors by quartile ----
    result_user = {r.id: s.user_id for s in sessions for r in s.results}
    user_exam_scores = {
        uid: avg([num(s.score) for s in items]) for uid, items in exams_by_user.items()
    }
    score_values = sorted(v for v in user_exam_scores.values() if is_finite_num(v))
    q25 = quantile(score_values, 0.25) if score_values else 0
    q75 = quantile(score_values, 0.75) if score_values else 0

    distractors = []
    for qid, rs in by_question.items():
        selected = [
            r for r in rs
            if r.selected_index is not None and isinstance(r.options_snapshot, list)
        ]
        total_selected = len(selected) or 1
        overall: Counter = Counter()
        low: Counter = Counter()
        high: Counter = Counter()
        for r in selected:
            if not 0 <= r.selected_index < len(r.options_snapshot):
                continue
            text = r.options_snapshot[r.selected_index]
            if not text:
                continue
            overall[text] += 1
            score = user_exam_scores.get(result_user.get(r.id))
            if score is not None:
                if score <= q25:
                    low[text] += 1
                if score >= q75:
                    high[text] += 1

        for text, count in overall.items():
            distractors.append({
                "questionId": qid,
                "optionText": text,
                "chosenPct": round1(pct_num(count, total_selected)),
                "chosenPctLowQuartile": (
                    round1(pct_num(low[text], max(1, sum(low.values())))) if text in low else None
                ),
                "chosenPctHighQuartile": (
                    round1(pct_num(high[text], max(1, sum(high.values())))) if text in high else None
                ),
            })

    # ---- Learning curves ----
    attempts_until_mastery = []
    for items in exams_by_user.values():
        count = 0
        for s in sorted(items, key=lambda s: s.created_at):
            count += 1
            if num(s.score) >= 8:
                attempts_until_mastery.append(count)
                break
    learning_curves = {
        "attemptsToMasteryP50": (
            js_round(quantile(attempts_until_mastery, 0.5)) if attempts_until_mastery else None
        ),
        "deltaPracticeToExamAvgPts": delta_practice_to_exam,
    }

    # ---- Reliability (KR-20) ----
    modal_k = modal_value(s.total_questions or len(s.results) for s in exam_sessions) or 0
    reliability = None
    if modal_k > 1:
        exam_by_q = group_by(
            [r for r in exam_results if r.question_id and r.question is not None],
            lambda r: r.question_id,
        )
        top_qids = sorted(exam_by_q, key=lambda q: -len(exam_by_q[q]))[:modal_k]
        sum_pq = 0.0
        for qid in top_qids:
            rs = exam_by_q[qid]
            p = len([r for r in rs if r.is_correct is True]) / len(rs) if rs else 0
            sum_pq += p * (1 - p)
        top_set = set(top_qids)
        totals = [
            sum(1 for r in s.results if r.question_id in top_set and r.question is not None and r.is_correct)
            for s in exam_sessions
        ]
        reliability = kr20(modal_k, sum_pq, variance(totals))

    # ---- Drift between halves ----
    mid = len(sessions) // 2
    first = group_by(
        [r for s in sessions[:mid] for r in s.results if r.question_id and r.question is not None],
        lambda r: r.question_id,
    )
    second = group_by(
        [r for s in sessions[mid:] for r in s.results if r.question_id and r.question is not None],
        lambda r: r.question_id,
    )
    drift = []
    for qid in dict.fromkeys(list(first) + list(second)):
        r1 = first.get(qid) or []
        r2 = second.get(qid) or []
        p1 = pct_num(len([r for r in r1 if r.is_correct is True]), len(r1)) if r1 else 0
        p2 = pct_num(len([r for r in r2 if r.is_correct is True]), len(r2)) if r2 else 0
        t1 = median(num(r.time_spent_seconds) for r in r1)
        t2 = median(num(r.time_spent_seconds) for r in r2)
        if t1 is not None and t2 is not None:
            delta_time = round2(t2 - t1)
        else:
            delta_time = t2 if t2 is not None else t1
        first_result = (r1 or r2)[0]
        drift.append({
            "questionId": qid,
            "title": first_result.question.prompt if first_result.question else f"Question {qid}",
            "deltaPCorrectPct": round1(p2 - p1),
            "deltaMedianTimeSec": delta_time,
        })
    drift.sort(key=lambda d: -abs(d["deltaPCorrectPct"]))

    return {
        "kpis": {
            "examScoreAvg10": round2(exam_score_avg10),
            "learningAccuracyPct": round1(learning_accuracy_pct),
            "masteryRatePct": round1(mastery_rate_pct),
            "atRiskRatePct": round1(at_risk_rate_pct),
            "practiceToExamDeltaPts": delta_practice_to_exam,
            "medianTimePerQuestionExamSec": round2(median_time_exam),
            "hintUsagePct": round1(hint_usage_pct),
            "errorConcentrationTop5Pct": round1(error_concentration),
        },
        "trends": trends,
        "histogramExam10": histogram,
        "scatterSpeedVsAccuracy": scatter,
        "hotspots": hotspots,
        "riskStudents": risk_students,
        "itemQuality": item_quality,
        "distractors": distractors,
        "learningCurves": learning_curves,
        "reliability": {"kr20": reliability},
        "drift": drift,
    }

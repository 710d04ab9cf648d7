"""
Student progress endpoint tests
"""
from datetime import datetime, time, timedelta

import pytest
from httpx import AsyncClient

from erplay.models import TestMode
from erplay.utils.psychometrics import current_iso_week

MONDAY_MORNING = datetime(2025, 3, 3, 9, 0)
TUESDAY_AFTERNOON = datetime(2025, 3, 4, 15, 0)


@pytest.fixture
def two_days(student, make_diagram, make_session):
    """A learning session on Monday and an exam on Tuesday, two of three right each"""
    async def _setup():
        diagram = await make_diagram(title='Shop', questions=3)
        await make_session(student, diagram, TestMode.LEARNING, [0, 1, 0],
                           created_at=MONDAY_MORNING, used_hint=True)
        await make_session(student, diagram, TestMode.EXAM, [0, 0, 1], created_at=TUESDAY_AFTERNOON)
        return diagram
    return _setup


class TestOverview:

    @pytest.mark.asyncio
    async def test_empty(self, client: AsyncClient, student_headers):
        data = (await client.get('/api/progress/overview', headers=student_headers)).json()

        assert data['answeredCount'] == 0
        assert data['sessionsCompleted'] == 0
        assert data['bestStreakDays'] == 0
        assert data['examScoreAvg'] == 0

    @pytest.mark.asyncio
    async def test_overview(self, client: AsyncClient, student_headers, two_days):
        await two_days()

        data = (await client.get('/api/progress/overview', headers=student_headers)).json()

        assert data['accuracyLearningPct'] == 66.7
        assert data['examScoreAvg'] == 6.67
        assert data['answeredCount'] == 6
        assert data['avgTimePerQuestionSec'] == 10
        assert data['sessionsCompleted'] == 2
        assert data['deltaExamVsLearningPts'] == 0
        assert data['bestStreakDays'] == 2


class TestTrends:

    @pytest.mark.asyncio
    async def test_daily(self, client: AsyncClient, student_headers, two_days):
        await two_days()

        points = (await client.get(
            '/api/progress/trends?from=2025-03-01&to=2025-03-31', headers=student_headers
        )).json()

        assert [p['date'] for p in points] == ['2025-03-03', '2025-03-04']
        assert points[0]['accuracyLearningPct'] == 66.7
        assert points[0]['examScorePct'] is None
        assert points[1]['examScorePct'] == 66.7
        assert points[1]['correctCount'] == 2
        assert points[1]['incorrectCount'] == 1

    @pytest.mark.asyncio
    async def test_weekly_bucket(self, client: AsyncClient, student_headers, two_days):
        await two_days()

        points = (await client.get('/api/progress/trends?bucket=week', headers=student_headers)).json()

        assert len(points) == 1
        assert points[0]['date'] == '2025-03-03'
        assert points[0]['correctCount'] == 4
        assert points[0]['incorrectCount'] == 2

    @pytest.mark.asyncio
    async def test_range_excludes_other_days(self, client: AsyncClient, student_headers, two_days):
        await two_days()

        points = (await client.get(
            '/api/progress/trends?from=2025-03-04&to=2025-03-04', headers=student_headers
        )).json()
        assert [p['date'] for p in points] == ['2025-03-04']

    @pytest.mark.asyncio
    async def test_unknown_bucket(self, client: AsyncClient, student_headers):
        response = await client.get('/api/progress/trends?bucket=month', headers=student_headers)
        assert response.status_code == 400


class TestErrors:

    @pytest.mark.asyncio
    async def test_weakest_questions(self, client: AsyncClient, student, student_headers, make_diagram, make_session):
        diagram = await make_diagram(title='Shop', questions=3)
        for answers in ([1, 0, 0], [2, 0, 0], [1, 0, 1]):
            await make_session(student, diagram, TestMode.EXAM, answers)

        items = (await client.get('/api/progress/errors', headers=student_headers)).json()

        assert [i['title'] for i in items] == [
            'Question 1 about Shop?', 'Question 3 about Shop?', 'Question 2 about Shop?'
        ]
        assert items[0]['errorRatePct'] == 100.0
        assert items[0]['commonChosenIndex'] == 1
        assert items[1]['errorRatePct'] == 33.3
        assert items[2]['commonChosenIndex'] is None

    @pytest.mark.asyncio
    async def test_needs_three_attempts(self, client: AsyncClient, student, student_headers, make_diagram, make_session):
        diagram = await make_diagram(questions=1)
        await make_session(student, diagram, TestMode.EXAM, [1])
        await make_session(student, diagram, TestMode.EXAM, [1])

        items = (await client.get('/api/progress/errors', headers=student_headers)).json()
        assert items == []


class TestHabitsAndClaims:

    @pytest.mark.asyncio
    async def test_habits(self, client: AsyncClient, student_headers, two_days):
        await two_days()

        data = (await client.get('/api/progress/habits', headers=student_headers)).json()

        assert len(data['byHour']) == 24
        assert data['byHour'][9] == {'hour': 9, 'answered': 3}
        assert data['byHour'][15] == {'hour': 15, 'answered': 3}
        assert data['avgSessionDurationSec'] == 300
        assert data['hintsPerQuestionPct'] == 100.0

    @pytest.mark.asyncio
    async def test_claims_counts(self, client: AsyncClient, student_headers):
        data = (await client.get('/api/progress/claims', headers=student_headers)).json()
        assert data == {'submitted': 0, 'approved': 0}


class TestWeeklyGoal:

    @pytest.mark.asyncio
    async def test_no_goal(self, client: AsyncClient, student_headers):
        response = await client.get('/api/progress/weekly-goal/progress', headers=student_headers)

        assert response.status_code == 200
        assert response.json() is None

    @pytest.mark.asyncio
    async def test_goal_reached_earns_badge(
        self, client: AsyncClient, student, student_headers, supervisor_headers, make_diagram, make_session
    ):
        monday, sunday = current_iso_week()
        await client.put('/api/supervisor/weekly-goal', json={'targetTests': 2}, headers=supervisor_headers)

        diagram = await make_diagram()
        progress = (await client.get('/api/progress/weekly-goal/progress', headers=student_headers)).json()
        assert progress['done'] == 0
        assert progress['completed'] is False

        for _ in range(2):
            await make_session(student, diagram, TestMode.EXAM, [0, 0, 0],
                               created_at=datetime.combine(monday, time(12, 0)))

        progress = (await client.get('/api/progress/weekly-goal/progress', headers=student_headers)).json()
        assert progress == {
            'userId': student.id,
            'target': 2,
            'done': 2,
            'pct': 100,
            'completed': True,
            'weekStart': monday.isoformat(),
            'weekEnd': sunday.isoformat(),
        }

        badges = (await client.get('/api/progress/badges', headers=student_headers)).json()
        assert badges == [{
            'id': f'{monday.isoformat()}_{sunday.isoformat()}',
            'label': f'Week {monday.isoformat()} - {sunday.isoformat()}',
            'weekStart': monday.isoformat(),
            'weekEnd': sunday.isoformat(),
            'earnedAt': sunday.isoformat(),
        }]

    @pytest.mark.asyncio
    async def test_sessions_outside_week_do_not_count(
        self, client: AsyncClient, student, student_headers, supervisor_headers, make_diagram, make_session
    ):
        monday, _ = current_iso_week()
        await client.put('/api/supervisor/weekly-goal', json={'targetTests': 1}, headers=supervisor_headers)
        diagram = await make_diagram()
        await make_session(student, diagram, TestMode.EXAM, [0, 0, 0],
                           created_at=datetime.combine(monday - timedelta(days=3), time(12, 0)))

        progress = (await client.get('/api/progress/weekly-goal/progress', headers=student_headers)).json()
        assert progress['done'] == 0
        assert (await client.get('/api/progress/badges', headers=student_headers)).json() == []

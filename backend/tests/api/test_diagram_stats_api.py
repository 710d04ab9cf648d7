"""
Diagram statistics endpoint tests
"""
from datetime import datetime

import pytest
from httpx import AsyncClient

from erplay.models import TestMode


class TestDiagramStats:

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, make_user, supervisor_headers, make_diagram, make_session):
        diagram = await make_diagram(questions=3)
        strong, weak = await make_user(), await make_user()
        await make_session(strong, diagram, TestMode.EXAM, [0, 0, 0], created_at=datetime(2025, 3, 3, 10))
        await make_session(weak, diagram, TestMode.EXAM, [1, 1, 1], created_at=datetime(2025, 3, 4, 10))
        await make_session(weak, diagram, TestMode.LEARNING, [0, 1, 0], created_at=datetime(2025, 3, 5, 10))

        response = await client.get(f'/api/admin/diagrams/{diagram.id}/stats', headers=supervisor_headers)

        assert response.status_code == 200
        assert response.headers['cache-control'] == 'no-store'
        data = response.json()
        assert data['kpis']['examScoreAvg10'] == 5.0
        assert data['kpis']['masteryRatePct'] == 50.0
        assert data['kpis']['atRiskRatePct'] == 50.0
        assert data['kpis']['learningAccuracyPct'] == 66.7
        assert [t['date'] for t in data['trends']] == ['2025-03-03', '2025-03-04', '2025-03-05']
        assert [r['studentId'] for r in data['riskStudents']] == [weak.id]
        assert len(data['itemQuality']) == 3
        assert set(data['reliability']) == {'kr20'}

    @pytest.mark.asyncio
    async def test_date_range(self, client: AsyncClient, student, supervisor_headers, make_diagram, make_session):
        diagram = await make_diagram()
        await make_session(student, diagram, TestMode.EXAM, [0, 0, 0], created_at=datetime(2025, 3, 3, 10))
        await make_session(student, diagram, TestMode.EXAM, [1, 1, 1], created_at=datetime(2025, 3, 10, 10))

        # Reversed bounds are swapped
        data = (await client.get(
            f'/api/admin/diagrams/{diagram.id}/stats?from=2025-03-05&to=2025-03-01',
            headers=supervisor_headers,
        )).json()

        assert data['kpis']['examScoreAvg10'] == 10.0
        assert [t['date'] for t in data['trends']] == ['2025-03-03']

    @pytest.mark.asyncio
    async def test_empty_diagram(self, client: AsyncClient, supervisor_headers, make_diagram):
        diagram = await make_diagram()

        data = (await client.get(f'/api/admin/diagrams/{diagram.id}/stats', headers=supervisor_headers)).json()

        assert data['trends'] == []
        assert data['reliability'] == {'kr20': None}
        assert sum(b['count'] for b in data['histogramExam10']) == 0

    @pytest.mark.asyncio
    async def test_bad_date(self, client: AsyncClient, supervisor_headers, make_diagram):
        diagram = await make_diagram()

        response = await client.get(
            f'/api/admin/diagrams/{diagram.id}/stats?from=03/05/2025', headers=supervisor_headers
        )
        assert response.status_code == 400
        assert response.json() == {'error': 'Expected format YYYY-MM-DD'}

        impossible = await client.get(
            f'/api/admin/diagrams/{diagram.id}/stats?to=2025-02-30', headers=supervisor_headers
        )
        assert impossible.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_diagram(self, client: AsyncClient, supervisor_headers):
        response = await client.get('/api/admin/diagrams/missing/stats', headers=supervisor_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_supervisors_only(self, client: AsyncClient, student_headers, make_diagram):
        diagram = await make_diagram()

        response = await client.get(f'/api/admin/diagrams/{diagram.id}/stats', headers=student_headers)
        assert response.status_code == 403

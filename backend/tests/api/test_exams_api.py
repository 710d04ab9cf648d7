"""
Stateless exam endpoint tests
"""
import pytest
from httpx import AsyncClient

from erplay.models import ReviewStatus


class TestStartExam:

    @pytest.mark.asyncio
    async def test_no_content(self, client: AsyncClient, student_headers):
        response = await client.get('/api/exams/start', headers=student_headers)

        assert response.status_code == 404
        assert response.json() == {'error': 'No tests available'}

    @pytest.mark.asyncio
    async def test_pending_questions_do_not_count(self, client: AsyncClient, student_headers, make_diagram):
        await make_diagram(status=ReviewStatus.PENDING)

        response = await client.get('/api/exams/start', headers=student_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_returns_limited_questions(self, client: AsyncClient, student_headers, make_diagram):
        diagram = await make_diagram(questions=5)

        response = await client.get('/api/exams/start?limit=3', headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['diagram']['id'] == diagram.id
        assert len(data['questions']) == 3
        assert len({q['id'] for q in data['questions']}) == 3
        for q in data['questions']:
            assert q['correctIndex'] == 0
            assert q['options'] == ['Option A', 'Option B', 'Option C', 'Option D']

    @pytest.mark.asyncio
    async def test_limit_bounds(self, client: AsyncClient, student_headers):
        response = await client.get('/api/exams/start?limit=0', headers=student_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_students_only(self, client: AsyncClient, supervisor_headers):
        response = await client.get('/api/exams/start', headers=supervisor_headers)
        assert response.status_code == 403

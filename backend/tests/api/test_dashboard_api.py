"""
Recent activity feed tests
"""
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from erplay.models import TestMode


@pytest.fixture
def activity(client, student, student_headers, make_diagram, make_session):
    """Two old sessions, then a proposed question"""
    async def _setup():
        diagram = await make_diagram(title='Shop')
        now = datetime.utcnow()
        await make_session(student, diagram, TestMode.EXAM, [0, 0, 1], created_at=now - timedelta(days=2))
        await make_session(student, diagram, TestMode.LEARNING, [0, 1, 1], created_at=now - timedelta(days=1))
        await client.post('/api/questions', json={
            'diagramId': diagram.id,
            'prompt': 'Which entity stores prices?',
            'hint': 'Catalog',
            'options': ['Product', 'Order'],
            'correctIndex': 0,
        }, headers=student_headers)
        return diagram
    return _setup


class TestRecentActivity:

    @pytest.mark.asyncio
    async def test_merged_newest_first(self, client: AsyncClient, student_headers, activity):
        await activity()

        items = (await client.get('/api/dashboard/recent', headers=student_headers)).json()

        assert [i['kind'] for i in items] == ['question', 'session', 'session']
        assert items[0]['status'] == 'pending'
        assert items[0]['title'] == 'Which entity stores prices?'
        assert items[1]['mode'] == 'learning'
        assert items[1]['diagramTitle'] == 'Shop'
        assert items[2]['score'] == 6.67
        assert items[2]['totalQuestions'] == 3
        assert items[2]['correctCount'] == 2

    @pytest.mark.asyncio
    async def test_pagination(self, client: AsyncClient, student_headers, activity):
        await activity()

        page = (await client.get('/api/dashboard/recent?limit=1&offset=1', headers=student_headers)).json()

        assert len(page) == 1
        assert page[0]['kind'] == 'session'
        assert page[0]['mode'] == 'learning'

    @pytest.mark.asyncio
    async def test_other_users_activity_hidden(self, client: AsyncClient, activity, make_user, auth_headers):
        await activity()
        other = auth_headers(await make_user())

        items = (await client.get('/api/dashboard/recent', headers=other)).json()
        assert items == []

    @pytest.mark.asyncio
    async def test_limit_bounds(self, client: AsyncClient, student_headers):
        response = await client.get('/api/dashboard/recent?limit=51', headers=student_headers)
        assert response.status_code == 400

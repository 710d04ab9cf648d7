"""
Question proposal and review endpoint tests
"""
import pytest
from httpx import AsyncClient


def _proposal(diagram_id, prompt='Which table holds the loans?'):
    return {
        'diagramId': diagram_id,
        'prompt': prompt,
        'hint': 'Follow the foreign key',
        'options': ['Loan', 'Book', 'Member'],
        'correctIndex': 0,
    }


class TestCreateQuestion:

    @pytest.mark.asyncio
    async def test_student_proposal_is_pending(self, client: AsyncClient, student_headers, make_diagram):
        diagram = await make_diagram()

        response = await client.post('/api/questions', json=_proposal(diagram.id), headers=student_headers)

        assert response.status_code == 201
        assert response.json()['status'] == 'pending'

    @pytest.mark.asyncio
    async def test_supervisor_question_is_approved(self, client: AsyncClient, supervisor_headers, make_diagram):
        diagram = await make_diagram()

        response = await client.post('/api/questions', json=_proposal(diagram.id), headers=supervisor_headers)

        assert response.status_code == 201
        assert response.json()['status'] == 'approved'

    @pytest.mark.asyncio
    async def test_unknown_diagram(self, client: AsyncClient, student_headers):
        response = await client.post('/api/questions', json=_proposal('missing'), headers=student_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_needs_two_options(self, client: AsyncClient, student_headers, make_diagram):
        diagram = await make_diagram()
        payload = dict(_proposal(diagram.id), options=['Only one'])

        response = await client.post('/api/questions', json=payload, headers=student_headers)
        assert response.status_code == 400


class TestReview:

    @pytest.mark.asyncio
    async def test_pending_queue_and_count(self, client: AsyncClient, student, student_headers, supervisor_headers, make_diagram):
        diagram = await make_diagram()
        await client.post('/api/questions', json=_proposal(diagram.id), headers=student_headers)

        count = await client.get('/api/questions/pending/count', headers=supervisor_headers)
        assert count.json() == {'count': 1}

        pending = (await client.get('/api/questions/pending', headers=supervisor_headers)).json()
        assert len(pending) == 1
        assert pending[0]['creator']['email'] == student.email
        assert pending[0]['diagram']['id'] == diagram.id
        assert pending[0]['options'] == ['Loan', 'Book', 'Member']

    @pytest.mark.asyncio
    async def test_pending_is_supervisor_only(self, client: AsyncClient, student_headers):
        response = await client.get('/api/questions/pending', headers=student_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_approve(self, client: AsyncClient, student_headers, supervisor_headers, make_diagram):
        diagram = await make_diagram(questions=1)
        created = (await client.post('/api/questions', json=_proposal(diagram.id), headers=student_headers)).json()

        response = await client.post(
            f"/api/questions/{created['id']}/verify", json={'decision': 'approve'}, headers=supervisor_headers
        )
        assert response.status_code == 200
        assert response.json() == {'message': 'Question approved'}

        listing = (await client.get('/api/diagrams', headers=student_headers)).json()
        assert listing[0]['questionsCount'] == 2

        count = await client.get('/api/questions/pending/count', headers=supervisor_headers)
        assert count.json() == {'count': 0}

    @pytest.mark.asyncio
    async def test_reject_keeps_comment(self, client: AsyncClient, student_headers, supervisor_headers, make_diagram):
        diagram = await make_diagram()
        created = (await client.post('/api/questions', json=_proposal(diagram.id), headers=student_headers)).json()

        response = await client.post(
            f"/api/questions/{created['id']}/verify",
            json={'decision': 'reject', 'comment': '  Ambiguous wording  '},
            headers=supervisor_headers,
        )
        assert response.json() == {'message': 'Question rejected'}

        mine = (await client.get('/api/questions/mine', headers=student_headers)).json()
        assert mine[0]['status'] == 'rejected'
        assert mine[0]['reviewComment'] == 'Ambiguous wording'
        assert mine[0]['source'] == 'student'
        assert mine[0]['reviewedAt'] is not None

    @pytest.mark.asyncio
    async def test_invalid_decision(self, client: AsyncClient, supervisor_headers):
        response = await client.post(
            '/api/questions/whatever/verify', json={'decision': 'maybe'}, headers=supervisor_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_verify_unknown_question(self, client: AsyncClient, supervisor_headers):
        response = await client.post(
            '/api/questions/missing/verify', json={'decision': 'approve'}, headers=supervisor_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_mine_lists_only_own(self, client: AsyncClient, student_headers, make_user, auth_headers, make_diagram):
        diagram = await make_diagram()
        other = await make_user()
        await client.post('/api/questions', json=_proposal(diagram.id, 'Mine?'), headers=student_headers)
        await client.post('/api/questions', json=_proposal(diagram.id, 'Theirs?'), headers=auth_headers(other))

        mine = (await client.get('/api/questions/mine', headers=student_headers)).json()
        assert [q['prompt'] for q in mine] == ['Mine?']

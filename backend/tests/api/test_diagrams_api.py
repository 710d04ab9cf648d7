"""
Diagram endpoint tests
"""
import io
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers

from erplay.core.config import settings
from erplay.schemas.diagram import parse_questions_field
from erplay.services.diagram_service import DiagramService

QUESTIONS = [
    {'prompt': 'Which entity owns the order?', 'hint': 'Look at the arrows',
     'options': ['Customer', 'Product', 'Invoice'], 'correctIndex': 0},
    {'prompt': 'What is the cardinality?', 'hint': 'Count the crows feet',
     'options': ['1:1', '1:N'], 'correctIndex': 1},
]


def _form(title='Library schema', questions=None):
    return {'title': title, 'questions': json.dumps(QUESTIONS if questions is None else questions)}


class TestCreateDiagram:

    @pytest.mark.asyncio
    async def test_create_diagram(self, client: AsyncClient, supervisor_headers, png_upload):
        response = await client.post('/api/diagrams', data=_form(), files=png_upload, headers=supervisor_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['id']
        assert data['path'].startswith('/uploads/diagrams/')
        assert data['path'].endswith('.png')

        detail = await client.get(f"/api/diagrams/{data['id']}", headers=supervisor_headers)
        assert detail.status_code == 200
        questions = {q['prompt']: q for q in detail.json()['questions']}
        assert set(questions) == {q['prompt'] for q in QUESTIONS}
        assert questions[QUESTIONS[1]['prompt']]['correctIndex'] == 1
        assert questions[QUESTIONS[0]['prompt']]['options'] == ['Customer', 'Product', 'Invoice']

    @pytest.mark.asyncio
    async def test_create_requires_image(self, client: AsyncClient, supervisor_headers):
        response = await client.post('/api/diagrams', data=_form(), headers=supervisor_headers)

        assert response.status_code == 400
        assert response.json() == {'error': 'Image is required'}

    @pytest.mark.asyncio
    async def test_create_rejects_other_file_types(self, client: AsyncClient, supervisor_headers):
        files = {'image': ('notes.txt', b'hello', 'text/plain')}
        response = await client.post('/api/diagrams', data=_form(), files=files, headers=supervisor_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_requires_title(self, client: AsyncClient, supervisor_headers, png_upload):
        response = await client.post(
            '/api/diagrams', data=_form(title='   '), files=png_upload, headers=supervisor_headers
        )
        assert response.status_code == 400
        assert response.json() == {'error': 'Title is required'}

    @pytest.mark.asyncio
    async def test_create_requires_questions(self, client: AsyncClient, supervisor_headers, png_upload):
        response = await client.post(
            '/api/diagrams', data=_form(questions=[]), files=png_upload, headers=supervisor_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_rejects_out_of_range_correct_index(self, client: AsyncClient, supervisor_headers, png_upload):
        bad = [dict(QUESTIONS[0], correctIndex=5)]
        response = await client.post(
            '/api/diagrams', data=_form(questions=bad), files=png_upload, headers=supervisor_headers
        )
        assert response.status_code == 400
        assert 'correctIndex' in response.json()['error']

    @pytest.mark.asyncio
    async def test_create_duplicate_title(self, client: AsyncClient, supervisor_headers, png_upload, make_diagram):
        await make_diagram(title='Library schema')

        response = await client.post('/api/diagrams', data=_form(), files=png_upload, headers=supervisor_headers)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, client: AsyncClient, student_headers, png_upload):
        response = await client.post('/api/diagrams', data=_form(), files=png_upload, headers=student_headers)
        assert response.status_code == 403


class TestListDiagrams:

    @pytest.mark.asyncio
    async def test_collection_accepts_trailing_slash(self, client: AsyncClient, supervisor_headers, png_upload):
        created = await client.post('/api/diagrams/', data=_form(), files=png_upload, headers=supervisor_headers)
        assert created.status_code == 201

        listed = await client.get('/api/diagrams/', headers=supervisor_headers)
        assert listed.status_code == 200
        assert [d['id'] for d in listed.json()] == [created.json()['id']]

    @pytest.mark.asyncio
    async def test_list_counts_approved_questions(self, client: AsyncClient, student_headers, make_diagram):
        from erplay.models import ReviewStatus

        diagram = await make_diagram(questions=2)
        await make_diagram(questions=1, status=ReviewStatus.PENDING)

        response = await client.get('/api/diagrams', headers=student_headers)

        assert response.status_code == 200
        counts = {d['id']: d['questionsCount'] for d in response.json()}
        assert counts[diagram.id] == 2
        assert sorted(counts.values()) == [0, 2]

    @pytest.mark.asyncio
    async def test_public_list_needs_no_auth(self, client: AsyncClient, make_diagram):
        diagram = await make_diagram()

        response = await client.get('/api/diagrams/public')

        assert response.status_code == 200
        assert response.json() == [{'id': diagram.id, 'title': diagram.title, 'path': diagram.path}]

    @pytest.mark.asyncio
    async def test_detail_unknown(self, client: AsyncClient, supervisor_headers):
        response = await client.get('/api/diagrams/missing-id', headers=supervisor_headers)
        assert response.status_code == 404


class TestUpdateDiagram:

    @pytest.mark.asyncio
    async def test_update_keeps_matching_questions(self, client: AsyncClient, supervisor_headers, png_upload):
        created = (await client.post(
            '/api/diagrams', data=_form(), files=png_upload, headers=supervisor_headers
        )).json()
        before = (await client.get(f"/api/diagrams/{created['id']}", headers=supervisor_headers)).json()
        kept_id = before['questions'][0]['id']

        new_question = {'prompt': 'Which attribute is the key?', 'hint': 'Underlined',
                        'options': ['isbn', 'title'], 'correctIndex': 0}
        response = await client.put(
            f"/api/diagrams/{created['id']}",
            data=_form(title='Library schema v2', questions=[QUESTIONS[0], new_question]),
            headers=supervisor_headers,
        )

        assert response.status_code == 200
        assert response.json() == {'message': 'Updated'}

        after = (await client.get(f"/api/diagrams/{created['id']}", headers=supervisor_headers)).json()
        assert after['title'] == 'Library schema v2'
        assert after['path'] == created['path']
        prompts = {q['prompt']: q['id'] for q in after['questions']}
        assert set(prompts) == {QUESTIONS[0]['prompt'], new_question['prompt']}
        assert prompts[QUESTIONS[0]['prompt']] == kept_id

    @pytest.mark.asyncio
    async def test_failed_update_removes_new_image(self, db_session, supervisor, make_diagram, png_upload):
        diagram = await make_diagram()
        stored = set(settings.DIAGRAMS_UPLOAD_PATH.glob('*'))
        image = UploadFile(
            file=io.BytesIO(png_upload['image'][1]), filename='replacement.png',
            headers=Headers({'content-type': 'image/png'}),
        )
        failing_commit = AsyncMock(side_effect=OperationalError('COMMIT', {}, Exception('disk full')))

        with patch.object(db_session, 'commit', failing_commit):
            with pytest.raises(OperationalError):
                await DiagramService(db_session).update_diagram(
                    diagram.id, 'Library schema v2', parse_questions_field(json.dumps(QUESTIONS)), image, supervisor,
                )

        assert set(settings.DIAGRAMS_UPLOAD_PATH.glob('*')) == stored

    @pytest.mark.asyncio
    async def test_update_unknown(self, client: AsyncClient, supervisor_headers):
        response = await client.put(
            '/api/diagrams/missing-id', data=_form(), headers=supervisor_headers
        )
        assert response.status_code == 404


class TestDeleteDiagram:

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, supervisor_headers, make_diagram):
        diagram = await make_diagram()

        response = await client.delete(f'/api/diagrams/{diagram.id}', headers=supervisor_headers)
        assert response.status_code == 204

        missing = await client.get(f'/api/diagrams/{diagram.id}', headers=supervisor_headers)
        assert missing.status_code == 404

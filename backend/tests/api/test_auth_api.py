"""
Authentication endpoint tests
"""
import pytest
from httpx import AsyncClient

from erplay.core.security import create_reset_token

PASSWORD = 'testpassword123'


async def _login(client: AsyncClient, email: str, password: str = PASSWORD):
    return await client.post('/api/auth/login', json={'email': email, 'password': password})


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, student):
        response = await _login(client, student.email)

        assert response.status_code == 200
        data = response.json()
        assert data['accessToken']
        assert data['refreshToken']
        assert data['user']['email'] == student.email
        assert data['user']['role'] == 'alumno'
        assert 'passwordHash' not in data['user']

    @pytest.mark.asyncio
    async def test_login_is_case_insensitive_on_email(self, client: AsyncClient, student):
        response = await _login(client, student.email.upper())
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient, student):
        response = await _login(client, student.email, 'wrongpassword')

        assert response.status_code == 401
        assert 'error' in response.json()

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient, db_session):
        response = await _login(client, 'nobody@example.com')
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_invalid_payload(self, client: AsyncClient, db_session):
        response = await client.post('/api/auth/login', json={'email': 'not-an-email', 'password': PASSWORD})

        assert response.status_code == 400
        assert response.json()['error']


class TestRefresh:

    @pytest.mark.asyncio
    async def test_refresh_rotates_token(self, client: AsyncClient, student):
        tokens = (await _login(client, student.email)).json()

        response = await client.post('/api/auth/refresh', json={'refreshToken': tokens['refreshToken']})
        assert response.status_code == 200
        rotated = response.json()
        assert rotated['accessToken']
        assert rotated['refreshToken'] != tokens['refreshToken']

        # The previous refresh token is no longer accepted
        reused = await client.post('/api/auth/refresh', json={'refreshToken': tokens['refreshToken']})
        assert reused.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_garbage_token(self, client: AsyncClient, db_session):
        response = await client.post('/api/auth/refresh', json={'refreshToken': 'garbage'})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_access_token_is_not_a_refresh_token(self, client: AsyncClient, student):
        tokens = (await _login(client, student.email)).json()

        response = await client.post('/api/auth/refresh', json={'refreshToken': tokens['accessToken']})
        assert response.status_code == 401


class TestLogout:

    @pytest.mark.asyncio
    async def test_logout_revokes_refresh_token(self, client: AsyncClient, student):
        tokens = (await _login(client, student.email)).json()
        headers = {'Authorization': f"Bearer {tokens['accessToken']}"}

        response = await client.post(
            '/api/auth/logout', json={'refreshToken': tokens['refreshToken']}, headers=headers
        )
        assert response.status_code == 204

        refreshed = await client.post('/api/auth/refresh', json={'refreshToken': tokens['refreshToken']})
        assert refreshed.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_requires_auth(self, client: AsyncClient, db_session):
        response = await client.post('/api/auth/logout', json={'refreshToken': 'x'})
        assert response.status_code == 401


class TestPasswordRecovery:

    @pytest.mark.asyncio
    async def test_forgot_password_same_answer_for_unknown_email(self, client: AsyncClient, student):
        known = await client.post('/api/auth/forgot-password', json={'email': student.email})
        unknown = await client.post('/api/auth/forgot-password', json={'email': 'ghost@example.com'})

        assert known.status_code == 200
        assert unknown.status_code == 200
        assert known.json() == unknown.json()

    @pytest.mark.asyncio
    async def test_reset_password_with_valid_token(self, client: AsyncClient, student):
        token = create_reset_token(str(student.id))

        response = await client.post(
            '/api/auth/reset-password', json={'token': token, 'newPassword': 'brandnew123'}
        )
        assert response.status_code == 200
        assert response.json() == {'message': 'Password updated'}

        assert (await _login(client, student.email)).status_code == 401
        assert (await _login(client, student.email, 'brandnew123')).status_code == 200

    @pytest.mark.asyncio
    async def test_reset_password_with_bad_token(self, client: AsyncClient, db_session):
        response = await client.post(
            '/api/auth/reset-password', json={'token': 'nope', 'newPassword': 'brandnew123'}
        )
        assert response.status_code == 400

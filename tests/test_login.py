"""
Login, logout and token-based registration
"""

from models import db, User, Token, ROLE_USER
from conftest import DEFAULT_PASSWORD


class TestLoginForm:
    """Tests for GET /login."""

    def test_renders_form_when_logged_out(self, client, captured_templates):
        response = client.get('/login')
        assert response.status_code == 200
        template, _ = captured_templates[0]
        assert template.name == 'login_form.html'

    def test_redirects_logged_in_user_to_dashboard(self, client, creator, login_as):
        login_as(creator)
        response = client.get('/login')
        assert response.status_code == 302
        assert response.headers['Location'] == '/creator/dashboard'

    def test_redirect_uses_base_url(self, app, client, creator, login_as):
        app.config['BASE_URL'] = 'https://tasks.example.com/'
        login_as(creator)
        response = client.get('/login')
        assert response.headers['Location'] == 'https://tasks.example.com/creator/dashboard'


class TestLogin:
    """Tests for POST /login."""

    def test_valid_credentials_redirect_to_role_dashboard(self, client, creator):
        response = client.post('/login', data={'username': 'creator', 'password': DEFAULT_PASSWORD})
        assert response.status_code == 302
        assert response.headers['Location'] == '/creator/dashboard'
        with client.session_transaction() as sess:
            assert sess['user_id'] == creator.id
            assert sess['user_role'] == 'creator'

    def test_session_cookie_expires(self, client, creator):
        response = client.post('/login', data={'username': 'creator', 'password': DEFAULT_PASSWORD})
        cookie = response.headers['Set-Cookie']
        assert 'Expires=' in cookie
        with client.session_transaction() as sess:
            assert sess.permanent

    def test_login_records_last_login(self, client, creator):
        assert creator.last_login is None
        client.post('/login', data={'username': 'creator', 'password': DEFAULT_PASSWORD})
        assert db.session.get(User, creator.id).last_login is not None

    def test_wrong_password_rerenders_form(self, client, creator, captured_templates):
        response = client.post('/login', data={'username': 'creator', 'password': 'nope'})
        assert response.status_code == 401
        template, context = captured_templates[0]
        assert template.name == 'login_form.html'
        assert context['error'] == 'Invalid credentials'
        with client.session_transaction() as sess:
            assert 'user_id' not in sess

    def test_unknown_login_gives_same_error(self, client, captured_templates):
        response = client.post('/login', data={'username': 'ghost', 'password': DEFAULT_PASSWORD})
        assert response.status_code == 401
        assert captured_templates[0][1]['error'] == 'Invalid credentials'

    def test_empty_form_is_rejected(self, client):
        response = client.post('/login', data={})
        assert response.status_code == 401

    def test_already_logged_in_is_redirected(self, client, creator, login_as):
        login_as(creator)
        response = client.post('/login', data={'username': 'x', 'password': 'y'})
        assert response.status_code == 302
        assert response.headers['Location'] == '/creator/dashboard'


class TestLogout:
    """Tests for GET /logout."""

    def test_logout_clears_session(self, client, creator, login_as):
        login_as(creator)
        response = client.get('/logout')
        assert response.status_code == 302
        assert response.headers['Location'] == '/login'
        with client.session_transaction() as sess:
            assert 'user_id' not in sess

    def test_logout_when_logged_out(self, client):
        response = client.get('/logout')
        assert response.status_code == 302

    def test_dashboard_unreachable_after_logout(self, client, creator, login_as):
        login_as(creator)
        client.get('/logout')
        response = client.get('/creator/dashboard')
        assert response.headers['Location'] == '/login'


class TestRegister:
    """Tests for /register/<token>."""

    def test_form_for_known_token(self, client, creator, make_token):
        make_token(creator, 'invite-1')
        response = client.get('/register/invite-1')
        assert response.status_code == 200

    def test_unknown_token_is_404(self, client):
        response = client.get('/register/missing')
        assert response.status_code == 404

    def test_register_joins_creator_team_and_spends_token(self, client, creator, make_token):
        make_token(creator, 'invite-1')
        response = client.post('/register/invite-1', data={
            'login': 'newbie',
            'password': 'long-enough-password'
        })
        assert response.status_code == 302
        assert response.headers['Location'] == '/login'

        user = User.query.filter_by(login='newbie').first()
        assert user.role == ROLE_USER
        assert user.registration_token == 'team-code'
        assert user.avatar == 'default.png'
        assert Token.query.filter_by(token='invite-1').first() is None

    def test_registered_user_can_log_in(self, client, creator, make_token):
        make_token(creator, 'invite-1')
        client.post('/register/invite-1', data={'login': 'newbie', 'password': 'long-enough-password'})
        response = client.post('/login', data={'username': 'newbie', 'password': 'long-enough-password'})
        assert response.headers['Location'] == '/user/dashboard'

    def test_duplicate_login_is_rejected(self, client, creator, member, make_token):
        make_token(creator, 'invite-1')
        response = client.post('/register/invite-1', data={
            'login': 'member',
            'password': 'long-enough-password'
        })
        assert response.status_code == 409
        assert Token.query.filter_by(token='invite-1').first() is not None

    def test_short_password_is_rejected(self, client, creator, make_token, captured_templates):
        make_token(creator, 'invite-1')
        response = client.post('/register/invite-1', data={'login': 'newbie', 'password': 'short'})
        assert response.status_code == 400
        assert 'password' in captured_templates[0][1]['errors']
        assert User.query.filter_by(login='newbie').first() is None

    def test_password_minimum_comes_from_config(self, app, client, creator, make_token):
        app.config['PASSWORD_MIN_LENGTH'] = 12
        make_token(creator, 'invite-1')
        response = client.post('/register/invite-1', data={'login': 'newbie', 'password': 'only-11-chr'})
        assert response.status_code == 400

        response = client.post('/register/invite-1', data={'login': 'newbie', 'password': 'exactly-12ch'})
        assert response.status_code == 302

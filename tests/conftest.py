import pytest

from cloudcart import create_app
from cloudcart.models import db, User


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'SECRET_KEY': 'test-secret',
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'STOCK_POLICY': 'ignore',
        'ENFORCE_STATUS_TRANSITIONS': False,
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def auth(token):
    return {'Authorization': f'Bearer {token}'}


def register(client, name='Alice', email='alice@example.com', password='secret123'):
    """Helper: POST /api/register and return the response JSON."""
    response = client.post('/api/register', json={'name': name, 'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()


@pytest.fixture()
def user(client):
    return register(client)


@pytest.fixture()
def other_user(client):
    return register(client, name='Bob', email='bob@example.com')


@pytest.fixture()
def admin(app, client):
    data = register(client, name='Admin', email='admin@example.com', password='admin123')
    with app.app_context():
        u = db.session.get(User, data['user']['id'])
        u.is_admin = True
        db.session.commit()
    data['user']['isAdmin'] = True
    return data


@pytest.fixture()
def make_product(client, admin):
    def _make(name='Widget', price=10, stock=10, category='General'):
        response = client.post('/api/products', headers=auth(admin['token']), json={
            'name': name,
            'description': f'{name} description',
            'price': price,
            'image': f'https://img.example.com/{name}.png',
            'category': category,
            'stock': stock,
        })
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _make

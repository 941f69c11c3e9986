from cloudcart.models import User, Product
from cloudcart.seed import ADMIN_EMAIL, SAMPLE_PRODUCTS


def test_health(client):
    assert client.get('/api/health').get_json() == {'status': 'ok'}


def test_unknown_route_renders_json(client):
    response = client.get('/api/nowhere')
    assert response.status_code == 404
    assert 'message' in response.get_json()


def test_wrong_method_renders_json(client):
    response = client.patch('/api/products')
    assert response.status_code == 405
    assert 'message' in response.get_json()


def test_unexpected_error_is_500(app):
    @app.route('/boom')
    def boom():
        raise RuntimeError('kaboom')

    response = app.test_client().get('/boom')
    assert response.status_code == 500
    assert response.get_json() == {'message': 'Internal server error'}


def test_seed_command(app):
    result = app.test_cli_runner().invoke(args=['seed'])
    assert result.exit_code == 0, result.output
    assert ADMIN_EMAIL in result.output

    with app.app_context():
        admin = User.query.filter_by(email=ADMIN_EMAIL).one()
        assert admin.is_admin
        assert Product.query.count() == len(SAMPLE_PRODUCTS)


def test_seeded_admin_can_log_in(app, client):
    app.test_cli_runner().invoke(args=['seed'])
    response = client.post('/api/login', json={'email': ADMIN_EMAIL, 'password': 'admin123'})
    assert response.status_code == 200
    assert response.get_json()['user']['isAdmin'] is True

# cloudcart/app.py
import re
import os
import logging
from decimal import Decimal, InvalidOperation
from flask import Flask, Blueprint, jsonify, request, g, send_from_directory, current_app
from flask_cors import CORS
from werkzeug.security import generate_password_hash, check_password_hash
from dotenv import load_dotenv
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from .models import db, MAX_ID, User, Product, Order, OrderItem
from .auth import issue_token, login_required, admin_required
from .errors import ValidationError, Conflict, NotFound, register_error_handlers
from . import orders
from .seed import seed_command

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"[^@]+@[^@]+\.[^@]+")
MIN_PASSWORD_LENGTH = 6
PRODUCT_FIELDS = ('name', 'description', 'price', 'image', 'category', 'stock')

api = Blueprint('api', __name__, url_prefix='/api')


def _env_flag(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(test_config=None):
    load_dotenv()
    app = Flask(__name__, instance_relative_config=True)
    app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv('DATABASE_URL', 'sqlite:///cloudcart.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'devsecret')
    app.config['TOKEN_MAX_AGE'] = int(os.getenv('TOKEN_MAX_AGE', 7 * 24 * 60 * 60))
    app.config['UPLOAD_FOLDER'] = os.getenv('UPLOAD_FOLDER', os.path.join(app.instance_path, 'uploads'))
    app.config['MAX_CONTENT_LENGTH'] = int(os.getenv('MAX_UPLOAD_SIZE_MB', '5')) * 1024 * 1024
    app.config['CORS_ORIGINS'] = os.getenv('CORS_ORIGINS', 'http://localhost:5173')
    app.config['STOCK_POLICY'] = os.getenv('STOCK_POLICY', 'ignore')
    app.config['ENFORCE_STATUS_TRANSITIONS'] = _env_flag('ENFORCE_STATUS_TRANSITIONS')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')
    if test_config:
        app.config.update(test_config)

    logging.getLogger('cloudcart').setLevel(app.config['LOG_LEVEL'])
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    origins = [o.strip() for o in app.config['CORS_ORIGINS'].split(',') if o.strip()]
    CORS(app, supports_credentials=True, origins=origins or '*')

    db.init_app(app)
    register_error_handlers(app, db)
    app.register_blueprint(api)
    app.cli.add_command(seed_command)

    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)

    with app.app_context():
        db.create_all()

    app.logger.info('CloudCart started (stock policy: %s)', app.config['STOCK_POLICY'])
    return app


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _auth_response(user):
    return jsonify({'user': user.to_dict(), 'token': issue_token(user)})


@api.route('/health')
def health():
    return jsonify({'status': 'ok'})


# Auth

@api.route('/register', methods=['POST'])
def register():
    data = _json_body()
    name = str(data.get('name') or '').strip()
    email = str(data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not name or not email or not password:
        raise ValidationError('All fields are required')
    if not EMAIL_REGEX.match(email):
        raise ValidationError('Invalid email format')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if User.query.filter_by(email=email).first():
        raise Conflict('User already exists')
    user = User(name=name, email=email, password_hash=generate_password_hash(password))
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same email
        db.session.rollback()
        raise Conflict('User already exists')
    logger.info('Registered user %s', user.id)
    return _auth_response(user)


@api.route('/login', methods=['POST'])
def login():
    data = _json_body()
    email = str(data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        raise ValidationError('Email and password are required')
    user = User.query.filter_by(email=email).first()
    if not user or not isinstance(password, str) or not check_password_hash(user.password_hash, password):
        logger.warning('Failed login for %s', email)
        raise ValidationError('Invalid credentials')
    return _auth_response(user)


@api.route('/user')
@login_required
def current_user():
    return jsonify(g.user.to_dict())


# Users (admin)

def _get_user(user_id):
    user = db.session.get(User, user_id) if 0 < user_id <= MAX_ID else None
    if user is None:
        raise NotFound('User not found')
    return user


@api.route('/users')
@admin_required
def list_users():
    users = User.query.order_by(User.id).all()
    return jsonify([u.to_dict() for u in users])


@api.route('/users/<int:user_id>', methods=['DELETE'])
@admin_required
def delete_user(user_id):
    user = _get_user(user_id)
    Order.query.filter_by(user_id=user.id).update({'user_id': None})
    db.session.delete(user); db.session.commit()
    logger.info('Admin %s deleted user %s', g.user.id, user_id)
    return jsonify({'message': 'User deleted'})


@api.route('/users/<int:user_id>/admin', methods=['PUT'])
@admin_required
def set_admin(user_id):
    data = _json_body()
    is_admin = data.get('isAdmin')
    if not isinstance(is_admin, bool):
        raise ValidationError('isAdmin must be a boolean')
    user = _get_user(user_id)
    user.is_admin = is_admin
    db.session.commit()
    logger.info('Admin %s set isAdmin=%s on user %s', g.user.id, is_admin, user_id)
    return jsonify(user.to_dict())


# Products

def _get_product(product_id):
    product = db.session.get(Product, product_id) if 0 < product_id <= MAX_ID else None
    if product is None:
        raise NotFound('Product not found')
    return product


def _product_fields(data, partial=False):
    """Validate a product payload and return the column values to set."""
    values = {}
    for field in ('name', 'description', 'image'):
        if field in data or not partial:
            value = str(data.get(field) or '').strip()
            if not value:
                raise ValidationError(f'{field.capitalize()} required.')
            values[field] = value
    if 'price' in data or not partial:
        raw = data.get('price')
        try:
            if raw is None or isinstance(raw, bool):
                raise ValueError()
            price = Decimal(str(raw))
            if not price.is_finite() or price < 0:
                raise ValueError()
        except (ValueError, InvalidOperation):
            raise ValidationError('Invalid price. Must be a non-negative number.')
        values['price'] = price
    if 'category' in data:
        values['category'] = str(data.get('category') or '').strip() or 'General'
    if 'stock' in data:
        stock = data.get('stock')
        if not isinstance(stock, int) or isinstance(stock, bool) or not 0 <= stock <= MAX_ID:
            raise ValidationError('Invalid stock. Must be a non-negative integer.')
        values['stock'] = stock
    return values


@api.route('/products')
def list_products():
    category = request.args.get('category')
    search = request.args.get('search')
    query = Product.query
    if category:
        query = query.filter(Product.category == category)
    if search:
        query = query.filter(or_(Product.name.ilike(f'%{search}%'),
                                 Product.description.ilike(f'%{search}%')))
    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return jsonify([p.to_dict() for p in products])


@api.route('/products/<int:product_id>')
def product_detail(product_id):
    return jsonify(_get_product(product_id).to_dict())


@api.route('/products', methods=['POST'])
@admin_required
def add_product():
    p = Product(**_product_fields(_json_body()))
    db.session.add(p); db.session.commit()
    logger.info('Admin %s created product %s', g.user.id, p.id)
    return jsonify(p.to_dict()), 201


@api.route('/products/<int:product_id>', methods=['PUT'])
@admin_required
def edit_product(product_id):
    p = _get_product(product_id)
    for field, value in _product_fields(_json_body(), partial=True).items():
        setattr(p, field, value)
    db.session.commit()
    return jsonify(p.to_dict())


@api.route('/products/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    p = _get_product(product_id)
    OrderItem.query.filter_by(product_id=p.id).update({'product_id': None})
    db.session.delete(p); db.session.commit()
    logger.info('Admin %s deleted product %s', g.user.id, product_id)
    return jsonify({'message': 'Product deleted'})


# Orders

@api.route('/orders', methods=['POST'])
@login_required
def create_order():
    data = _json_body()
    order = orders.create_order(g.user, data.get('items'), data.get('shippingAddress'))
    return jsonify(order.to_dict()), 201


@api.route('/orders')
@login_required
def list_orders():
    records = orders.list_orders(g.user)
    return jsonify([o.to_dict(include_user=g.user.is_admin) for o in records])


@api.route('/orders/<int:order_id>/status', methods=['PUT'])
@admin_required
def update_order_status(order_id):
    data = _json_body()
    order = orders.update_status(order_id, data.get('status'))
    return jsonify(order.to_dict(include_user=True))


@api.route('/orders/<int:order_id>/payment', methods=['PUT'])
@login_required
def submit_payment(order_id):
    order = orders.submit_payment(
        g.user,
        order_id,
        receipt=request.files.get('receipt'),
        transaction_number=request.form.get('transactionNumber'),
    )
    return jsonify(order.to_dict())

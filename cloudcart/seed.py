# cloudcart/seed.py
import logging
from decimal import Decimal

import click
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash

from .models import db, User, Product, Order, OrderItem

logger = logging.getLogger(__name__)

ADMIN_EMAIL = 'admin@cloudcart.com'
ADMIN_PASSWORD = 'admin123'

SAMPLE_PRODUCTS = [
    {
        'name': 'Wireless Headphones',
        'description': 'High-quality wireless headphones with noise cancellation',
        'price': '99.99',
        'image': 'https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=300',
        'category': 'Electronics',
        'stock': 50,
    },
    {
        'name': 'Smartphone',
        'description': 'Latest smartphone with advanced features',
        'price': '699.99',
        'image': 'https://images.unsplash.com/photo-1511707171634-5f897ff02aa9?w=300',
        'category': 'Electronics',
        'stock': 25,
    },
    {
        'name': 'Laptop',
        'description': 'Powerful laptop for work and gaming',
        'price': '1299.99',
        'image': 'https://images.unsplash.com/photo-1496181133206-80ce9b88a853?w=300',
        'category': 'Computers',
        'stock': 15,
    },
    {
        'name': 'Smart Watch',
        'description': 'Fitness tracking smartwatch',
        'price': '249.99',
        'image': 'https://images.unsplash.com/photo-1523275335684-37898b6baf30?w=300',
        'category': 'Wearables',
        'stock': 30,
    },
    {
        'name': 'Tablet',
        'description': 'Lightweight tablet for entertainment',
        'price': '399.99',
        'image': 'https://images.unsplash.com/photo-1544244015-0df4b3ffc6b0?w=300',
        'category': 'Electronics',
        'stock': 20,
    },
]


def seed_data():
    """Reset users and products to the demo data set."""
    # orders reference both tables, so they go first
    OrderItem.query.delete()
    Order.query.delete()
    User.query.delete()
    Product.query.delete()

    db.session.add(User(
        name='Admin User',
        email=ADMIN_EMAIL,
        password_hash=generate_password_hash(ADMIN_PASSWORD),
        is_admin=True,
    ))
    for data in SAMPLE_PRODUCTS:
        db.session.add(Product(**dict(data, price=Decimal(data['price']))))
    db.session.commit()
    logger.info('Seeded %d products and admin %s', len(SAMPLE_PRODUCTS), ADMIN_EMAIL)


@click.command('seed')
@with_appcontext
def seed_command():
    """Clear users/products and load the demo catalog."""
    seed_data()
    click.echo(f'Seeded admin {ADMIN_EMAIL} and {len(SAMPLE_PRODUCTS)} products.')

"""
Flask CLI commands for database and store maintenance.

Commands:
- flask init-db: Create missing tables
- flask reset-db: Drop and recreate every table
- flask seed: Base store plus an admin user
- flask create-user: Add a user to a store
- flask verify-ledger: Compare product counters with their stock ledger
"""

import re
import sys

import click
from flask import current_app

from backoffice.database import create_all, drop_all, get_session
from backoffice.models import Store, User, UserRole
from backoffice.services.auth_service import create_user
from backoffice.services.stock_ledger_service import verify_ledger
from backoffice.utils.formatters import generate_slug

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

SEED_COLORS = {
    'primary': '#3b82f6',
    'secondary': '#8b5cf6',
    'accent': '#10b981',
    'background': '#ffffff',
    'text': '#1f2937',
}


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create missing tables."""
        create_all()
        click.echo(click.style('✅ Tablas creadas', fg='green'))

    @app.cli.command('reset-db')
    @click.confirmation_option(prompt='Se borrarán TODOS los datos. ¿Continuar?')
    def reset_db_command():
        """Drop and recreate every table."""
        drop_all()
        create_all()
        click.echo(click.style('✅ Base de datos recreada', fg='green'))

    @app.cli.command('seed')
    @click.option('--email', default='admin@tienda.com', show_default=True)
    @click.option('--password', default='admin123', show_default=True)
    def seed_command(email, password):
        """Create the base store and its admin user."""
        session = get_session()

        if session.query(User).filter_by(email=email).first():
            click.echo(click.style(f'❌ Ya existe un usuario con el email: {email}', fg='red'))
            sys.exit(1)

        name = current_app.config['STORE_NAME']
        store = Store(
            name=name,
            slug=generate_slug(name),
            description='Sistema de administración de e-commerce genérico',
            colors=SEED_COLORS,
            currency=current_app.config['STORE_CURRENCY'],
            language=current_app.config['STORE_LANGUAGE'],
            timezone=current_app.config['STORE_TIMEZONE'],
        )
        session.add(store)
        session.flush()
        create_user(session, store.id, email, password, name='Administrador', role=UserRole.ADMIN.value)
        session.commit()

        click.echo(click.style(f'✅ Tienda creada: {store.name}', fg='green'))
        click.echo('\n📋 CREDENCIALES DE ACCESO:')
        click.echo(f'   Email: {email}')
        click.echo(f'   Password: {password}')

    @app.cli.command('create-user')
    @click.option('--store-id', type=int, required=True, help='Store the user belongs to')
    @click.option('--email', prompt=True, help='User email address')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option('--name', default=None)
    @click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.STAFF.value, show_default=True)
    def create_user_command(store_id, email, password, name, role):
        """Add a user to an existing store."""
        if not re.match(EMAIL_PATTERN, email):
            click.echo(click.style('❌ Email inválido. Use formato: user@example.com', fg='red'))
            sys.exit(1)

        if len(password) < 6:
            click.echo(click.style('❌ La contraseña debe tener al menos 6 caracteres.', fg='red'))
            sys.exit(1)

        session = get_session()
        if session.get(Store, store_id) is None:
            click.echo(click.style(f'❌ Tienda {store_id} no encontrada', fg='red'))
            sys.exit(1)
        if session.query(User).filter_by(email=email.strip().lower()).first():
            click.echo(click.style(f'❌ Ya existe un usuario con el email: {email}', fg='red'))
            sys.exit(1)

        user = create_user(session, store_id, email, password, name=name, role=role)
        session.commit()
        click.echo(click.style(f'✅ Usuario creado (ID {user.id}, rol {role})', fg='green'))

    @app.cli.command('verify-ledger')
    @click.option('--store-id', type=int, default=None, help='Only this store (default: all)')
    def verify_ledger_command(store_id):
        """Replay every product's stock movements and report mismatches."""
        session = get_session()
        query = session.query(Store.id).order_by(Store.id)
        if store_id is not None:
            query = query.filter(Store.id == store_id)

        problems = 0
        for (sid,) in query.all():
            for discrepancy in verify_ledger(session, sid):
                problems += 1
                broken = f", cadena rota en movimiento {discrepancy.broken_chain_at}" if discrepancy.broken_chain_at else ''
                click.echo(click.style(
                    f'⚠️  Tienda {sid} / producto {discrepancy.product_id} ({discrepancy.product_name}): '
                    f'stock {discrepancy.counter}, ledger {discrepancy.replayed}{broken}',
                    fg='yellow'
                ))

        if problems:
            click.echo(click.style(f'❌ {problems} productos con diferencias', fg='red'))
            sys.exit(1)
        click.echo(click.style('✅ Ledger consistente', fg='green'))

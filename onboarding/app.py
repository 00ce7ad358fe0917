import logging

from flask import Flask, jsonify
from redis import Redis

from onboarding.config import Config
from onboarding.db import init_db
from onboarding.exceptions import ServiceException
from onboarding.routes.invitation import invitation_bp
from onboarding.routes.onboarding import onboarding_bp
from onboarding.services.notification_service import build_notification_sender
from onboarding.services.queue_service import QueueService
from onboarding.utils.clock import utcnow


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )


def create_app(overrides: dict = None, redis_client: Redis = None, notifier=None, clock=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config['LOG_LEVEL'])
    init_db(app)

    redis_client = redis_client or Redis(host=app.config['REDIS_HOST'], port=app.config['REDIS_PORT'])
    app.extensions['onboarding'] = {
        'redis': redis_client,
        'queue': QueueService(redis_client),
        'notifier': notifier or build_notification_sender(app.config),
        'clock': clock or utcnow,
    }

    # Register blueprints
    app.register_blueprint(invitation_bp, url_prefix='/invitations')
    app.register_blueprint(onboarding_bp, url_prefix='/onboarding')

    # Global error handler for ServiceException
    @app.errorhandler(ServiceException)
    def handle_service_exception(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(500)
    def handle_internal_error(error):
        return jsonify({'message': 'Internal server error'}), 500

    return app

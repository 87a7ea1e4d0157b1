"""
Flask Application Factory for the DocQA Backend

Creates and configures the Flask application: logging, CORS, rate limiting,
error handlers and the application context holding the retrieval pipeline.
"""

import logging
import sys
import time
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError
import structlog

from .routes import api_bp, limiter
from ..rag_engine.config import Config, get_config
from ..rag_engine.context import AppContext
from ..rag_engine.exceptions import DocQAError, DocumentLoadError, EmptyInput, InvalidInput
from ..utils.helpers import create_error_response

logger = structlog.get_logger(__name__)


def configure_logging(level: int = logging.INFO):
    """Configure structured JSON logging over the standard library."""
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_app(config: Optional[Config] = None,
               context: Optional[AppContext] = None,
               testing: bool = False) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Settings to use (defaults to the process configuration)
        context: Prebuilt application context, mainly for tests
        testing: Whether to configure for testing

    Returns:
        Configured Flask application
    """
    configure_logging()

    if context is not None:
        config = context.config
    config = config or get_config()
    context = context or AppContext.create(config)

    app = Flask(__name__)
    configure_app(app, config, testing)
    app.extensions["docqa"] = context

    CORS(app,
         origins=config.flask.cors_origins,
         methods=["GET", "POST", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         supports_credentials=False)

    limiter.init_app(app)
    app.register_blueprint(api_bp)

    register_error_handlers(app)
    register_hooks(app)

    @app.route('/')
    def root():
        """Root endpoint with basic service information."""
        return jsonify({
            "service": "DocQA RAG Backend",
            "version": "1.0.0",
            "status": "running",
            "uptime": round(time.time() - app.config["START_TIME"], 2),
            "endpoints": {
                "upload": "POST /upload",
                "add_text": "POST /add-text",
                "add_website": "POST /add-website",
                "query": "POST /query",
                "generate_answer": "POST /generate-answer",
                "stats": "GET /stats",
                "clear": "DELETE /clear",
                "health": "GET /health"
            }
        })

    logger.info("Flask application created successfully",
                testing=testing,
                embedding_provider=context.embeddings.name,
                model=context.language_model.model_name)

    return app


def configure_app(app: Flask, config: Config, testing: bool = False):
    """Configure Flask application settings."""
    app.config.update({
        'SECRET_KEY': config.flask.secret_key,
        'DEBUG': config.flask.debug,
        'MAX_CONTENT_LENGTH': config.flask.max_upload_mb * 1024 * 1024,
        'START_TIME': time.time(),
    })
    app.json.sort_keys = False

    if testing:
        app.config.update({
            'TESTING': True,
            'SECRET_KEY': 'test-secret-key',
            'DEBUG': False,
            'RATELIMIT_ENABLED': False,
        })


def error_status(error: DocQAError) -> int:
    """HTTP status code for a domain error."""
    if isinstance(error, (InvalidInput, EmptyInput)):
        return 400
    if isinstance(error, DocumentLoadError):
        return 502
    # StoreUnavailable, ModelError and ConfigurationError
    return 500


def register_error_handlers(app: Flask):
    """Register global error handlers."""

    @app.errorhandler(DocQAError)
    def handle_domain_error(error: DocQAError):
        status = error_status(error)
        log = logger.warning if status < 500 else logger.error
        log("Request failed",
            path=request.path,
            status_code=status,
            error_type=type(error).__name__,
            error=str(error))
        return jsonify(create_error_response(error.message, type(error).__name__, error.details)), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        details = {"errors": error.errors(include_url=False, include_context=False, include_input=False)}
        return jsonify(create_error_response("Invalid request format", "validation_error", details)), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify(create_error_response("Endpoint not found", "not_found")), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify(create_error_response("Method not allowed", "method_not_allowed")), 405

    @app.errorhandler(413)
    def request_too_large(error):
        max_mb = app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return jsonify(create_error_response(f"File too large. Maximum size is {max_mb}MB.",
                                             "request_too_large")), 413

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        return jsonify(create_error_response("Too many requests. Please try again later.", "rate_limit")), 429

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error("Internal server error occurred", error=str(error))
        return jsonify(create_error_response("Internal server error", "internal_server_error")), 500


def register_hooks(app: Flask):
    """Register application hooks for request logging."""

    @app.before_request
    def before_request():
        logger.info("Request started",
                    method=request.method,
                    path=request.path,
                    remote_addr=request.remote_addr)

    @app.after_request
    def after_request(response):
        logger.info("Request completed",
                    method=request.method,
                    path=request.path,
                    status_code=response.status_code,
                    content_length=response.content_length)
        return response


def main():
    """Run the application in development mode."""
    config = get_config()
    context = AppContext.create(config)
    app = create_app(context=context)

    logger.info("Starting DocQA API server",
                host=config.flask.host,
                port=config.flask.port,
                debug=config.flask.debug)
    try:
        app.run(
            host=config.flask.host,
            port=config.flask.port,
            debug=config.flask.debug,
            threaded=True
        )
    finally:
        context.close()


if __name__ == '__main__':
    main()

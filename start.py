#!/usr/bin/env python3
"""
Development server runner for MedTrack
Runs the API in development mode with debug and reload enabled
"""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def load_environment():
    """Load environment variables"""
    env_file = Path(__file__).parent / '.env'

    if env_file.exists():
        load_dotenv(env_file)
        print("✓ Environment variables loaded from .env")
    else:
        print("ℹ️  No .env file found (using defaults)")

    if not os.environ.get('FLASK_APP'):
        os.environ['FLASK_APP'] = 'medtrack:create_app()'


def initialize_app():
    """Initialize Flask application with Flask-Migrate"""
    print("\n📦 Initializing application...")

    instance_dir = Path(__file__).parent / 'instance'
    instance_dir.mkdir(exist_ok=True)
    print("✓ Required directories created")

    from medtrack import create_app

    app = create_app()
    service = app.extensions['medtrack']
    with app.app_context():
        created = service.generate_horizon()
        aged = service.sweep()
    print(f"✓ Application initialized ({len(created)} occurrences generated, {len(aged)} marked missed)")

    return app


def run_development_server(app):
    """Run Flask development server with debug and reload"""
    port = int(os.environ.get('PORT', 7878))
    host = os.environ.get('HOST', '0.0.0.0')

    print("\n" + "="*60)
    print("🚀 Starting MedTrack Development Server")
    print("="*60)
    print(f"Timezone: {app.config['MEDTRACK_TIMEZONE']}")
    print(f"Remote sync: {app.config['REMOTE_SYNC_URL'] or 'disabled'}")
    print(f"Host: {host}")
    print(f"Port: {port}")
    print(f"Access URL: http://localhost:{port}/api/health")
    print("="*60 + "\n")

    try:
        app.run(
            host=host,
            port=port,
            debug=True,
            use_reloader=True
        )
    except KeyboardInterrupt:
        print("\n\n👋 Server stopped by user")
        sys.exit(0)


def main():
    """Main entry point"""
    print("\n🔧 MedTrack Development Setup\n")

    load_environment()
    app = initialize_app()
    run_development_server(app)


if __name__ == '__main__':
    main()

"""
Runs the Flask application 'app' locally on port 5000.

Note: when deployed, application.py is the entry point and this script is not used.
"""
import logging

from ellarises.app import app


def _main():
    app.run(host=app.config.get('HOST', '0.0.0.0'),
            port=int(app.config.get('PORT', 5000)),
            debug=app.config.get('DEBUG', False))


if __name__ == '__main__':
    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s',
                        datefmt='%Y-%m-%d %H:%M:%S')
    logging.root.setLevel(app.config['LOG_LEVEL'])
    _main()

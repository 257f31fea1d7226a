"""
WSGI entry point. The hosting platform looks for a callable named 'application'.
"""
import logging

from ellarises.app import app

logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s',
                    datefmt='%Y-%m-%d %H:%M:%S')
logging.root.setLevel(app.config['LOG_LEVEL'])

application = app

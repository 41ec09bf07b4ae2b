#!/usr/bin/env python3
"""
Keystone Rentals Backend Application Runner
"""
import os
from keystone import create_app, db
from keystone.models import User, Property, Unit, Lease, Application

app = create_app()

@app.shell_context_processor
def make_shell_context():
    return {
        'db': db,
        'User': User,
        'Property': Property,
        'Unit': Unit,
        'Lease': Lease,
        'Application': Application
    }

if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_ENV') == 'development'
    app.run(host='0.0.0.0', port=port, debug=debug)

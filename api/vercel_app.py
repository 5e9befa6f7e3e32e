# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Vercel-specific Flask application entry point.
Builds the application once per serverless instance.
"""

import os
from app import create_app

# Vercel expects the WSGI application to be named 'app'
app = create_app()

if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))

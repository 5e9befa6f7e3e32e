# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the civic report lifecycle engine.

Geofencing, category routing, the report state machine and assignment
dispatch. Functions here do no I/O beyond what their callers hand them.
"""

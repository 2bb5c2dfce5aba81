"""
Blueprints package for ARIOT Web.

This package contains Flask blueprints that organize routes by function:
- webhook: Public ingestion endpoints (/webhook, /webhook/<slug>)
- api_auth: Setup wizard and login (/api/app-info, /api/complete-setup, /api/login)
- api_integrations: Integration CRUD and audit log (/api/integrations, /api/system-logs)
- api_data: Map data, CSV export, survey sessions, saved points and scenarios
- api_planner: Coverage estimate and gateway suggestions (/api/planner/*)
- api_debug: Health, config and error endpoints (/api/debug/*)
"""
from __future__ import annotations

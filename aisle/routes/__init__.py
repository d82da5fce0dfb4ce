"""
Route Modules

- auth.py: sign-in, sign-up and reset-password pages, magic link flow
- pages.py: root redirect and dashboard
- external_content.py: Bluesky ingestion API
"""

# Routes package init
"""
DeskBook Backend - API Routes Package
=======================================

Route Inventory:
    - auth.py:      POST /login_user, /verify, /complete_user
    - places.py:    POST /take_place, /leave_place, /assign_place, /unassign_place
    - friends.py:   POST /add_friend, /remove_friend
    - users.py:     POST /settings_user, /remove_user, /send_email
    - api_keys.py:  POST /api_key, /api_key/verify
    - files.py:     GET  /files/{path}            (stored photos)
    - health.py:    GET  /health

Routes are thin: read the body, call one service method, shape the response.
Every POST route requires a verified session (security/session.py).
"""

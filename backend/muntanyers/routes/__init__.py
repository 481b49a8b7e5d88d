# Routes package init
"""
muntanyers Backend: API Routes Package
======================================

Route Inventory:
    - auth.py:     register, login, logout, check-auth
    - users.py:    own profile, password, account deletion, avatar,
                   search, public profiles, a user's posts
    - posts.py:    create, feed, delete, like/unlike, comments
    - social.py:   follow, resolve follow requests, notifications
    - uploads.py:  GET /uploads/avatars/{filename}
    - health.py:   GET /health

Routes stay thin: they read the caller's id from the session (require_user),
call one service, and shape the response. Business rules live in services.
"""

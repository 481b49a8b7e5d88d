# Services package init
"""
muntanyers Backend: Services Layer
==================================

What:  Business rules between the routes (HTTP) and the database.
How:   Each service is a plain class with a module-level singleton. Every
       method takes the AsyncSession and the acting account id explicitly;
       the route's get_db_session dependency commits or rolls back.

Service Inventory:
    - AccountService:       registration, login, profiles, search, deletion
    - PostService:          posts, feed, likes, comments
    - RelationshipService:  follow state machine and visibility rules
    - NotificationService:  fan-out of like/comment/follow events, inbox
    - FileService:          avatar validation, storage and cleanup
"""

# Services package init
"""
DeskBook Backend - Services Layer
===================================

What:  Business rules between the routes (HTTP) and the database.
How:   Stateless singletons; each call receives the request's db session and
       SessionContext explicitly.

Service Inventory:
    - UserService:    login, confirmation, profile completion, settings, removal
    - PlaceService:   take/leave places, semi-flex ownership and availability
    - FriendService:  friend list add/remove
    - ApiKeyService:  integration API keys
    - ImageHost:      photo upload (LocalImageHost / RemoteImageHost)
    - MailService:    confirmation and free-form email
    - CircuitBreaker: guards the remote image host
"""

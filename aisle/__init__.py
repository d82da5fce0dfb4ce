"""
Bridging the Aisle Application Package

Server-rendered platform for civil political discussion.

- config.py: Application settings from environment variables
- database.py: Async database engine and session dependency
- dependencies.py: Session user dependencies for routes
- exceptions.py: Collaborator failure types
- guards.py: Redirect guards for auth and member pages
- limiter.py: Rate limiting configuration
- main.py: FastAPI application entry point
- models.py: SQLAlchemy ORM models
- templating.py: Jinja2 template configuration

Subpackages:
- routes/: Route handlers (auth, pages, external content)
- services/: Sessions, e-mail, Bluesky client, moderation, ingestion, audit
- utils/: Text rendering helpers
- templates/: HTML templates
- static/: Stylesheet
"""

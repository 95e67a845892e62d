"""archdocs - Architecture documentation generator.

archdocs uploads a repository to the Supermodel analysis API, turns the
returned dependency graph into one markdown page per code entity, enriches
those pages with change impact, test coverage and circular dependency data,
and builds a static site. It is designed to run as a GitHub Action.

Core principles:
- The dependency graph is required; every other analysis is optional
- Submissions are idempotent: one key per job, reused on every poll
- Enrichment is additive: existing frontmatter is never overwritten
"""

__version__ = "0.1.0"
__author__ = "archdocs Contributors"

"""API router for v1 endpoints."""

from fastapi import APIRouter

from synthesis.api import auth, criteria, harms, observations, projects, prompts, strategies, suggestions

router = APIRouter()

# Dashboard, project settings and export
router.include_router(projects.router)

# Synthesis chain: observations -> harms -> criteria -> strategies
router.include_router(observations.router)
router.include_router(harms.router)
router.include_router(criteria.router)
router.include_router(strategies.router)

# AI suggestions, coaching and the prompt settings page
router.include_router(suggestions.router)
router.include_router(prompts.router)

# Sign-in notification
router.include_router(auth.router)

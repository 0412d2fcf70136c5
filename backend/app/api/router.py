from fastapi import APIRouter
from app.api.routes import matches, players, profiles, teams

router = APIRouter()
router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
router.include_router(teams.router, prefix="/teams", tags=["teams"])
router.include_router(players.router, prefix="/players", tags=["players"])
router.include_router(matches.router, prefix="/matches", tags=["matches"])

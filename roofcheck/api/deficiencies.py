from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from roofcheck.dependencies import get_scorer
from roofcheck.schemas import CriticalityAnalysis, DeficiencyIn
from roofcheck.services.criticality import CriticalityScorer

router = APIRouter(prefix="/api/deficiencies", tags=["deficiencies"])


@router.post("/analyze", response_model=CriticalityAnalysis)
async def analyze_deficiency(
    body: DeficiencyIn,
    scorer: CriticalityScorer = Depends(get_scorer),
):
    return scorer.analyze_deficiency(body)


@router.post("/enhance", response_model=list[DeficiencyIn])
async def enhance_deficiencies(
    body: list[DeficiencyIn],
    force: bool = Query(default=False),
    scorer: CriticalityScorer = Depends(get_scorer),
):
    """Fill in the criticality fields. Already scored deficiencies are left as-is unless force=true."""
    return scorer.enhance_deficiencies(body, force=force)

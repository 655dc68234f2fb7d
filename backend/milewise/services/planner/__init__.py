"""Planner — cache-only award trip planning and saved plans.

Modules:
    config        Cache thresholds, ranking weights and provenance tags
    flight_cache  Reads cached award inventory as normalized candidates
    user_state    Loyalty programs held by an onboarding session
    constraints   Per-candidate rule checks with fail-closed semantics
    ranker        Scoring and deterministic ordering of accepted options
    plan_service  Pipeline entry point for POST /planner/plan
    saved_plans   Persistence, re-validation and share links for saved plans
    errors        Exceptional outcomes mapped to HTTP error bodies

Pipeline:
    missing_fields → FlightCacheRepository → staleness gate
    → apply_constraints → rank_options → PlanOk | PlanNoFeasible
"""

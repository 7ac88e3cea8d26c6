"""
Production Approval Workflow
Blueprint registry.

    project_bp     /api/v1                  reference data, projects, transitions
    history_bp     /api/v1                  project history, activity log
    scheduler_bp   /api/v1/scheduler        job listing + manual trigger (admin)
    health_bp      /api/v1/health           readiness / liveness probes
"""

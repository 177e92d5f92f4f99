"""
Health checks and Prometheus metrics for the generation service
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response
from sqlmodel import Session, select
from sqlalchemy import func
from typing import Optional
import os
import time
import psutil
import structlog

from smartnotes.services.providers import ModelRegistry

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
AI_GENERATION_REQUESTS = Counter('ai_generation_requests_total', 'Total AI generation requests', ['type', 'status'])
CHUNK_OUTCOMES = Counter('note_chunk_outcomes_total', 'Per-chunk note generation outcomes', ['status'])
LLM_CALL_DURATION = Histogram(
    'llm_call_duration_seconds', 'Chat completion latency', ['provider'],
    buckets=(1, 2.5, 5, 10, 20, 40, 60, 120, 300),
)


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_database(self) -> dict:
        """Row counts of the stored study material"""
        try:
            from smartnotes.db import engine
            from smartnotes.models import MCQ, Material, SmartNote

            with Session(engine) as session:
                counts = {
                    name: session.exec(select(func.count()).select_from(table)).one()
                    for name, table in (("materials", Material), ("smart_notes", SmartNote), ("mcqs", MCQ))
                }
            return {"status": "healthy", "message": "Database connection successful", **counts}
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            return {"status": "unhealthy", "message": f"Database connection failed: {e}"}

    def check_providers(self, registry: ModelRegistry) -> dict:
        """Which providers have a key in the environment; none at all is unhealthy."""
        providers = {
            profile.provider.value: {
                "base_url": profile.base_url,
                "configured_keys": sum(1 for key in profile.env_keys if os.getenv(key)),
                "models": sum(1 for spec in registry.all() if spec.provider == provider),
            }
            for provider, profile in registry.profiles.items()
        }
        missing = [name for name, p in providers.items() if not p["configured_keys"]]
        if len(missing) == len(providers):
            status = "unhealthy"
        elif missing:
            status = "degraded"
        else:
            status = "healthy"
        return {"status": status, "providers": providers, "missing_credentials": missing}

    def get_system_metrics(self) -> dict:
        try:
            memory = psutil.virtual_memory()
            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024**3), 2),
                "uptime_seconds": round(time.time() - self.start_time, 1),
            }
        except Exception as e:
            logger.error("system_metrics_failed", error=str(e))
            return {"error": str(e)}

    def get_health_status(self, registry: Optional[ModelRegistry] = None) -> dict:
        """Overall status is the worst of the individual checks"""
        checks = {
            "database": self.check_database(),
            "llm_providers": self.check_providers(registry or ModelRegistry()),
        }
        statuses = {check["status"] for check in checks.values()}
        for overall in ("unhealthy", "degraded", "healthy"):
            if overall in statuses:
                break

        return {
            "status": overall,
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": self.get_system_metrics(),
            "unhealthy_components": [name for name, check in checks.items() if check["status"] != "healthy"],
        }


health_checker = HealthChecker()


def get_metrics():
    """Get Prometheus metrics"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

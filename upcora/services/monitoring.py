"""
Health checks and Prometheus metrics
"""
import time

import psutil
import structlog
from fastapi.responses import Response
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlmodel import Session, func, select

from upcora.db import engine
from upcora.models import GameSession, Upload, User
from upcora.services.cache import cache

logger = structlog.get_logger()

REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
TOTAL_USERS = Gauge('total_users', 'Total number of users in database')
TOTAL_UPLOADS = Gauge('total_uploads', 'Total number of uploads in database')
EXTRACTION_REQUESTS = Counter('extraction_requests_total', 'Document text extraction requests', ['file_type', 'status'])
GAME_GENERATION_REQUESTS = Counter('game_generation_requests_total', 'Game generation requests', ['status'])
SCORE_SUBMISSIONS = Counter('score_submissions_total', 'Submitted game scores', ['authenticated'])


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_database(self) -> dict:
        try:
            with Session(engine) as session:
                users = session.exec(select(func.count()).select_from(User)).one()
            return {
                "status": "healthy",
                "message": "Database connection successful",
                "users_count": users,
            }
        except Exception as e:
            logger.error("database_health_check_failed", error=str(e))
            return {
                "status": "unhealthy",
                "message": f"Database connection failed: {e}",
            }

    def check_cache(self) -> dict:
        try:
            test_key = "health_check_test"
            cache.set(test_key, "test_value", expire=10)
            value = cache.get(test_key)
            cache.delete(test_key)
        except Exception as e:
            logger.error("cache_health_check_failed", error=str(e))
            return {"status": "unhealthy", "message": f"Cache connection failed: {e}"}

        if value != "test_value":
            return {"status": "unhealthy", "message": "Cache operations failed"}
        return {
            "status": "healthy",
            "message": "Cache operations successful",
            "backend": "redis" if cache.redis_client is not None else "memory",
        }

    def get_system_metrics(self) -> dict:
        try:
            memory = psutil.virtual_memory()
            disk = psutil.disk_usage('/')
            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024**3), 2),
                "disk_percent": disk.percent,
                "disk_free_gb": round(disk.free / (1024**3), 2),
                "uptime_seconds": round(time.time() - self.start_time, 1),
            }
        except Exception as e:
            logger.error("system_metrics_failed", error=str(e))
            return {"error": str(e)}

    def get_application_metrics(self) -> dict:
        try:
            with Session(engine) as session:
                users = session.exec(select(func.count()).select_from(User)).one()
                uploads = session.exec(select(func.count()).select_from(Upload)).one()
                games = session.exec(select(func.count()).select_from(GameSession)).one()
        except Exception as e:
            logger.error("application_metrics_failed", error=str(e))
            return {"error": str(e)}

        TOTAL_USERS.set(users)
        TOTAL_UPLOADS.set(uploads)
        return {
            "total_users": users,
            "total_uploads": uploads,
            "total_games": games,
            "cache_available": cache.redis_client is not None,
        }

    def get_health_status(self) -> dict:
        checks = {
            "database": self.check_database(),
            "cache": self.check_cache(),
        }
        unhealthy = [name for name, check in checks.items() if check["status"] == "unhealthy"]
        return {
            "status": "healthy" if not unhealthy else "unhealthy",
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": self.get_system_metrics(),
            "application_metrics": self.get_application_metrics(),
            "unhealthy_components": unhealthy,
        }


health_checker = HealthChecker()


def get_metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

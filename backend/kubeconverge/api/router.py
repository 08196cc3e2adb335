from fastapi import APIRouter

from kubeconverge.api.routes import helm, manifests, namespaces, services, status

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(manifests.router)
api_router.include_router(status.router)
api_router.include_router(namespaces.router)
api_router.include_router(services.router)
api_router.include_router(helm.router)

"""
Kubernetes session shared by the dashboard routes
"""

import logging
from typing import Any

from fastapi import Request
from kubernetes import dynamic

from shoulders_platform.config import KubeconfigFile, Settings
from shoulders_platform.k8s_utils import DynamicObjectStore, KubeClients, build_kube_clients

logger = logging.getLogger(__name__)


class KubeSession:
    """Holds the dashboard's active context and the clients built for it.

    Selecting a context only affects this process; the kubeconfig file is
    not rewritten.
    """

    def __init__(self, settings: Settings, kubeconfig: KubeconfigFile | None = None) -> None:
        self.settings = settings
        self.kubeconfig = kubeconfig or KubeconfigFile(settings.kubeconfig_path)
        self.active_context: str | None = None
        self._clients: KubeClients | None = None

    @property
    def mock(self) -> bool:
        return self.settings.mock_mode

    @property
    def has_kubeconfig(self) -> bool:
        """False when running without a kubeconfig file, e.g. in-cluster"""
        return self.kubeconfig.path.exists()

    def contexts(self) -> list[str]:
        if not self.has_kubeconfig:
            return []
        return self.kubeconfig.contexts()

    def current_context(self) -> str | None:
        if self.active_context or not self.has_kubeconfig:
            return self.active_context
        return self.kubeconfig.current_context()

    def cluster(self) -> dict[str, Any] | None:
        if not self.has_kubeconfig:
            return None
        return self.kubeconfig.cluster_for(self.current_context())

    def clients(self) -> KubeClients:
        if self._clients is None:
            self._clients = build_kube_clients(
                str(self.settings.kubeconfig_path), self.active_context
            )
        return self._clients

    def select_context(self, context: str) -> None:
        """Switch to another context, building its clients before committing

        Raises:
            KubeconfigError: If the context cannot be loaded
        """
        clients = build_kube_clients(str(self.settings.kubeconfig_path), context)
        self._clients = clients
        self.active_context = context
        logger.info("Dashboard switched to context %s", context)

    def dynamic_store(self) -> DynamicObjectStore:
        return DynamicObjectStore(dynamic.DynamicClient(self.clients().api_client))


def get_session(request: Request) -> KubeSession:
    """FastAPI dependency returning the application's session"""
    session: KubeSession = request.app.state.session
    return session

"""Cluster access backed by kr8s."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
import kr8s

from ..common.utils import split_fqn
from ..forward.exceptions import ResourceFetchError

logger = logging.getLogger(__name__)


def _as_list(resources: Any) -> list[Any]:
    if resources is None:
        return []
    if isinstance(resources, list):
        return resources
    return [resources]


def _reason(error: Exception) -> str:
    status = getattr(error, "status", None)
    if isinstance(status, Mapping) and status.get("reason"):
        return f"{status['reason']}: {error}"
    return str(error) or type(error).__name__


def _unavailable(error: Exception) -> str:
    return f"unavailable: {str(error) or type(error).__name__}"


class Kr8sCluster:
    """Fetch and list cluster resources through a lazily created kr8s API."""

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
        api: Any | None = None,
    ):
        """Initialize cluster access.

        Args:
            kubeconfig: Path to a kubeconfig file (kr8s default if None)
            context: Kubeconfig context to use (current context if None)
            api: Pre-built kr8s API object, mostly for tests
        """
        self.kubeconfig = kubeconfig
        self.context = context
        self._api = api

    @property
    def api(self) -> Any:
        if self._api is None:
            self._api = kr8s.api(kubeconfig=self.kubeconfig, context=self.context)
        return self._api

    def fetch_resource(self, kind: str, path: str) -> Mapping[str, Any]:
        """Fetch one resource.

        Args:
            kind: Resource kind (plural, singular or short name)
            path: ``namespace/name`` of the resource

        Returns:
            Raw resource manifest

        Raises:
            ResourceFetchError: If the resource is missing, denied, unreadable
                or the API server cannot be reached
        """
        namespace, name = split_fqn(path)
        logger.debug(f"Fetching {kind} {path!r}")
        try:
            resources = _as_list(
                kr8s.get(kind, name, namespace=namespace or None, api=self.api)
            )
        except kr8s.NotFoundError as e:
            raise ResourceFetchError(kind, path, "not found") from e
        except kr8s.ServerError as e:
            raise ResourceFetchError(kind, path, _reason(e)) from e
        except (kr8s.APITimeoutError, httpx.TransportError) as e:
            raise ResourceFetchError(kind, path, _unavailable(e)) from e
        except ValueError as e:
            raise ResourceFetchError(kind, path, str(e)) from e

        if not resources:
            raise ResourceFetchError(kind, path, "not found")

        raw = getattr(resources[0], "raw", None)
        if not isinstance(raw, Mapping):
            raise ResourceFetchError(kind, path, "decode error: unexpected payload")
        return raw

    def list_resources(
        self, kind: str, namespace: str, label_selector: Mapping[str, str]
    ) -> list[Mapping[str, Any]]:
        """List resources matching a label selector.

        Raises:
            ResourceFetchError: If the listing is denied, fails or the API
                server cannot be reached
        """
        try:
            resources = _as_list(
                kr8s.get(
                    kind,
                    namespace=namespace or None,
                    label_selector=dict(label_selector),
                    api=self.api,
                )
            )
        except kr8s.NotFoundError as e:
            raise ResourceFetchError(kind, namespace, "not found") from e
        except kr8s.ServerError as e:
            raise ResourceFetchError(kind, namespace, _reason(e)) from e
        except (kr8s.APITimeoutError, httpx.TransportError) as e:
            raise ResourceFetchError(kind, namespace, _unavailable(e)) from e
        except ValueError as e:
            raise ResourceFetchError(kind, namespace, str(e)) from e
        return [r.raw for r in resources]

"""Kubernetes secret storage driven through the kubectl binary."""
import base64
import json
import logging
import subprocess
from typing import Any, Dict, List, Optional

from .errors import NotFoundError, RemoteUnavailableError

logger = logging.getLogger(__name__)

MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
MANAGED_BY_VALUE = "ksecret"
DATA_KEY = "value"


def map_kubectl_error(stderr: str, action: str) -> Exception:
    """
    Translate kubectl stderr output into a ksecret error.

    Args:
        stderr: Captured standard error of the failed kubectl call
        action: Short description of what was attempted, used in the message
    """
    message = stderr.strip()
    # Client-side failures (an unknown --context, for one) also say "not found"
    if "Error from server (NotFound)" in message:
        return NotFoundError(f"{action}: Kubernetes resource not found.\n{message}")
    if "Unauthorized" in message:
        return RemoteUnavailableError(
            f"{action}: Kubernetes authentication failed.\nCheck your kubeconfig credentials.\n{message}"
        )
    if "Forbidden" in message:
        return RemoteUnavailableError(
            f"{action}: Kubernetes permission denied.\n"
            f"You don't have permission to perform this action in the namespace.\n{message}"
        )
    return RemoteUnavailableError(f"{action}: Kubernetes error: {message}")


class KubectlClient:
    """EnvironmentTarget implementation that shells out to kubectl."""

    def __init__(self, context: Optional[str] = None, kubectl: str = "kubectl"):
        self.context = context
        self.kubectl = kubectl

    def _run(self, args: List[str], action: str, input_text: Optional[str] = None) -> str:
        command = [self.kubectl]
        if self.context:
            command += ["--context", self.context]
        command += args

        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(
                command,
                input=input_text,
                capture_output=True,
                text=True,
                check=True
            )
        except FileNotFoundError as e:
            raise RemoteUnavailableError(
                f"{action}: '{self.kubectl}' executable not found. Install kubectl and ensure it is on PATH."
            ) from e
        except subprocess.CalledProcessError as e:
            raise map_kubectl_error(e.stderr or "", action) from e
        return result.stdout

    def namespace_exists(self, namespace: str) -> bool:
        try:
            self._run(["get", "namespace", namespace, "-o", "name"], "Failed to check namespace")
        except NotFoundError:
            return False
        return True

    def list_secret_ids(self, namespace: str) -> List[str]:
        """List secrets labelled as managed by ksecret in the namespace."""
        output = self._run(
            ["get", "secrets", "-n", namespace, "-l", f"{MANAGED_BY_LABEL}={MANAGED_BY_VALUE}", "-o", "json"],
            f"Failed to list secrets in namespace {namespace}",
        )
        try:
            items = json.loads(output).get("items", [])
        except json.JSONDecodeError as e:
            raise RemoteUnavailableError(f"Unexpected kubectl output listing secrets: {e}") from e
        return [item["metadata"]["name"] for item in items if item.get("metadata", {}).get("name")]

    def get_value(self, namespace: str, remote_id: str) -> Optional[str]:
        """Return the stored value, or None if the secret does not exist."""
        try:
            output = self._run(
                ["get", "secret", remote_id, "-n", namespace, "-o", "json"],
                f"Failed to read secret {remote_id}",
            )
        except NotFoundError:
            return None

        try:
            encoded = (json.loads(output).get("data") or {}).get(DATA_KEY)
        except json.JSONDecodeError as e:
            raise RemoteUnavailableError(f"Unexpected kubectl output reading {remote_id}: {e}") from e
        if encoded is None:
            return None
        return base64.b64decode(encoded).decode("utf-8")

    def create_or_update(self, namespace: str, remote_id: str, value: str) -> None:
        self._run(
            ["apply", "-n", namespace, "-f", "-"],
            f"Failed to create secret {remote_id}",
            input_text=json.dumps(self.build_manifest(namespace, remote_id, value)),
        )
        logger.info(f"Applied secret {remote_id} in namespace {namespace}")

    def delete(self, namespace: str, remote_id: str) -> None:
        self._run(
            ["delete", "secret", remote_id, "-n", namespace, "--ignore-not-found"],
            f"Failed to delete secret {remote_id}",
        )
        logger.info(f"Deleted secret {remote_id} from namespace {namespace}")

    @staticmethod
    def build_manifest(namespace: str, remote_id: str, value: str) -> Dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Secret",
            "type": "Opaque",
            "metadata": {
                "name": remote_id,
                "namespace": namespace,
                "labels": {MANAGED_BY_LABEL: MANAGED_BY_VALUE},
            },
            "data": {DATA_KEY: base64.b64encode(value.encode("utf-8")).decode("ascii")},
        }

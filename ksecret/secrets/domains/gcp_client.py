"""GCP Secret Manager client wrapper."""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import secretmanager

from .errors import NotFoundError, RemoteUnavailableError

logger = logging.getLogger(__name__)

MANAGED_BY_LABEL = "managed-by"
MANAGED_BY_VALUE = "ksecret"


def map_gcp_error(error: Exception, action: str) -> Exception:
    """
    Translate a Google API exception into a ksecret error.

    Args:
        error: Exception raised by the Secret Manager client
        action: Short description of what was attempted, used in the message

    Returns:
        NotFoundError or RemoteUnavailableError with a user-facing message
    """
    if isinstance(error, gcp_exceptions.NotFound):
        return NotFoundError(
            f"{action}: resource not found.\n"
            f"Check that the GCP project ID is correct and the secret exists."
        )
    if isinstance(error, (gcp_exceptions.Unauthenticated, auth_exceptions.DefaultCredentialsError)):
        return RemoteUnavailableError(
            f"{action}: authentication failed.\n"
            f"Run 'gcloud auth application-default login' to authenticate your local environment."
        )
    if isinstance(error, gcp_exceptions.PermissionDenied):
        return RemoteUnavailableError(
            f"{action}: permission denied.\n"
            f"Ensure your account has the 'Secret Manager Admin' (roles/secretmanager.admin) "
            f"or 'Secret Manager Secret Accessor' role for this project."
        )
    if isinstance(error, gcp_exceptions.ServiceUnavailable):
        return RemoteUnavailableError(
            f"{action}: service unavailable.\n"
            f"Secret Manager might be experiencing issues or you have connectivity problems."
        )
    return RemoteUnavailableError(f"{action}: Google Cloud error: {error}")


class GCPSecretClient:
    """Secret Manager implementation of the SecretSource interface."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            try:
                self._client = secretmanager.SecretManagerServiceClient()
            except auth_exceptions.GoogleAuthError as e:
                raise map_gcp_error(e, "Failed to create Secret Manager client") from e
        return self._client

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}"

    def secret_path(self, remote_id: str) -> str:
        return f"{self.parent}/secrets/{remote_id}"

    def list_secret_ids(self) -> List[str]:
        """
        List every secret id in the project.

        Returns:
            Short secret ids (the last segment of each resource name)
        """
        return list(self.list_secret_metadata())

    def list_secret_metadata(self) -> Dict[str, Optional[datetime]]:
        """
        List every secret id in the project with its creation time.

        Returns:
            Dict of short secret id to create_time (None when the API omits it)
        """
        logger.debug(f"Listing secrets in {self.parent}")
        try:
            return {
                secret.name.rsplit("/", 1)[-1]: getattr(secret, "create_time", None)
                for secret in self.client.list_secrets(request={"parent": self.parent})
            }
        except (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise map_gcp_error(e, "Failed to list secrets") from e

    def get_value(self, remote_id: str) -> str:
        """
        Fetch the latest version of a secret.

        Raises:
            NotFoundError: If the secret or its latest version does not exist
            RemoteUnavailableError: On any other API failure
        """
        name = f"{self.secret_path(remote_id)}/versions/latest"
        logger.debug(f"Accessing {name}")
        try:
            response = self.client.access_secret_version(request={"name": name})
        except (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise map_gcp_error(e, f"Failed to access secret {remote_id}") from e

        try:
            return response.payload.data.decode("UTF-8")
        except UnicodeDecodeError as e:
            raise RemoteUnavailableError(f"Secret {remote_id} data is not valid UTF-8") from e

    def create_or_update(self, remote_id: str, value: str) -> None:
        """Create the secret if missing, then add a new version holding value."""
        secret_name = self.secret_path(remote_id)
        try:
            try:
                self.client.get_secret(request={"name": secret_name})
            except gcp_exceptions.NotFound:
                logger.debug(f"Creating secret {secret_name}")
                self.client.create_secret(
                    request={
                        "parent": self.parent,
                        "secret_id": remote_id,
                        "secret": {
                            "replication": {"automatic": {}},
                            "labels": {MANAGED_BY_LABEL: MANAGED_BY_VALUE},
                        },
                    }
                )

            self.client.add_secret_version(
                request={"parent": secret_name, "payload": {"data": value.encode("UTF-8")}}
            )
        except (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise map_gcp_error(e, f"Failed to set secret {remote_id}") from e
        logger.info(f"Stored new version of {remote_id}")

    def delete(self, remote_id: str) -> None:
        """Delete a secret and all its versions. An absent secret is not an error."""
        try:
            self.client.delete_secret(request={"name": self.secret_path(remote_id)})
        except gcp_exceptions.NotFound:
            logger.debug(f"Secret {remote_id} already absent")
            return
        except (gcp_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError) as e:
            raise map_gcp_error(e, f"Failed to delete secret {remote_id}") from e
        logger.info(f"Deleted secret {remote_id}")

"""Reconcile a Kubernetes namespace with the secrets of one environment.

Sync always reads the source fresh (no cache). The target is brought to exactly
the source set: stale secrets are removed, replaced secrets are deleted before
they are recreated, and matching secrets are left alone. Failed operations are
recorded individually rather than rolled back; running sync again converges.
"""
import logging
from typing import Dict

from ..domains.clients import EnvironmentTarget, SecretSource
from ..domains.models import SyncOperation, SyncPlan, SyncResult
from ..domains.naming import NamingScheme, is_kubernetes_name

logger = logging.getLogger(__name__)


class SyncEngine:
    """Plans and applies delete-then-create reconciliation."""

    def __init__(self, source: SecretSource, target: EnvironmentTarget, naming: NamingScheme):
        self.source = source
        self.target = target
        self.naming = naming

    def plan(self, environment: str, namespace: str, recreate_all: bool = False) -> SyncPlan:
        """
        Compute the delta between the source and the target namespace.

        Args:
            environment: Environment whose secrets are synced
            namespace: Target namespace
            recreate_all: Delete and recreate every source secret even when the
                target already holds the same value

        Returns:
            SyncPlan; source ids that are unparseable or not valid Kubernetes
            names are listed in skipped. Source errors propagate before anything
            is mutated
        """
        scoped_ids, skipped = self.naming.scope(self.source.list_secret_ids(), environment)
        source_ids = []
        for remote_id in scoped_ids:
            if is_kubernetes_name(remote_id):
                source_ids.append(remote_id)
            else:
                logger.warning(f"Skipping secret that is not a valid Kubernetes name: {remote_id}")
                skipped.append(remote_id)
        desired: Dict[str, str] = {
            remote_id: self.source.get_value(remote_id) for remote_id in sorted(source_ids)
        }

        target_ids, target_skipped = self.naming.scope(self.target.list_secret_ids(namespace), environment)
        plan = SyncPlan(environment=environment, namespace=namespace, skipped=skipped + target_skipped)

        for remote_id in sorted(target_ids):
            if remote_id not in desired:
                plan.to_delete.append(remote_id)

        present = set(target_ids)
        for remote_id, value in desired.items():
            if remote_id not in present:
                plan.to_create[remote_id] = value
            elif recreate_all or self.target.get_value(namespace, remote_id) != value:
                plan.to_delete.append(remote_id)
                plan.to_create[remote_id] = value
            else:
                plan.unchanged.append(remote_id)

        logger.debug(
            f"Plan for {environment} -> {namespace}: {len(plan.to_delete)} delete(s), "
            f"{len(plan.to_create)} create(s), {len(plan.unchanged)} unchanged"
        )
        return plan

    def apply(self, plan: SyncPlan, dry_run: bool = False) -> SyncResult:
        """
        Apply a plan: every delete first, then every create.

        Args:
            plan: Plan produced by plan()
            dry_run: Return the plan without touching the target

        Returns:
            SyncResult with one SyncOperation per attempted delete/create
        """
        result = SyncResult(plan=plan, dry_run=dry_run)
        if dry_run:
            return result

        failed_deletes = set()
        for remote_id in plan.to_delete:
            try:
                self.target.delete(plan.namespace, remote_id)
            except Exception as e:
                logger.warning(f"Failed to delete {remote_id}: {e}")
                failed_deletes.add(remote_id)
                result.operations.append(SyncOperation("delete", remote_id, False, str(e)))
            else:
                result.operations.append(SyncOperation("delete", remote_id, True))

        for remote_id, value in plan.to_create.items():
            if remote_id in failed_deletes:
                result.operations.append(
                    SyncOperation("create", remote_id, False, "skipped because delete failed")
                )
                continue
            try:
                self.target.create_or_update(plan.namespace, remote_id, value)
            except Exception as e:
                logger.warning(f"Failed to create {remote_id}: {e}")
                result.operations.append(SyncOperation("create", remote_id, False, str(e)))
            else:
                result.operations.append(SyncOperation("create", remote_id, True))

        return result

    def sync(self, environment: str, namespace: str, dry_run: bool = False, recreate_all: bool = False) -> SyncResult:
        return self.apply(self.plan(environment, namespace, recreate_all=recreate_all), dry_run=dry_run)

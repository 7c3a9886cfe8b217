"""
Cloud Scheduler service for managing scheduled integration syncs.
"""

import logging
from typing import Dict, List, Any, Optional

from google.api_core.exceptions import NotFound
from google.auth import default
from google.cloud import scheduler_v1

from ..models.integration import Integration, SyncFrequency

logger = logging.getLogger(__name__)

# Frequencies without an entry are not scheduled (realtime is webhook driven, manual is on demand)
FREQUENCY_CRON = {
    SyncFrequency.MINUTES_5: "*/5 * * * *",
    SyncFrequency.MINUTES_15: "*/15 * * * *",
    SyncFrequency.HOURLY: "0 * * * *",
    SyncFrequency.DAILY: "0 0 * * *",
}


def cron_for_frequency(frequency: SyncFrequency) -> Optional[str]:
    """Cron expression for a sync frequency, or None if it is not scheduled."""
    return FREQUENCY_CRON.get(frequency)


class SchedulerService:
    """
    Service for managing one Cloud Scheduler job per integration.
    """

    def __init__(self, project_id: Optional[str] = None, region: str = "us-central1"):
        """
        Initialize Cloud Scheduler service.

        Args:
            project_id: Google Cloud project ID. If None, uses default from environment.
            region: Cloud Scheduler location
        """
        try:
            if project_id:
                self.client = scheduler_v1.CloudSchedulerClient()
                self.project_id = project_id
            else:
                # Use application default credentials
                credentials, project = default()
                self.client = scheduler_v1.CloudSchedulerClient(credentials=credentials)
                self.project_id = project

            self.region = region
            self.parent = f"projects/{self.project_id}/locations/{self.region}"

            logger.info(f"Scheduler service initialized for project: {self.project_id}, region: {self.region}")

        except Exception as e:
            logger.error(f"Failed to initialize Cloud Scheduler: {e}")
            raise

    def _job_path(self, integration_id: str) -> str:
        return f"{self.parent}/jobs/sync-{integration_id}"

    def _build_job(self, integration: Integration, schedule: str, service_url: str) -> Dict[str, Any]:
        return {
            "name": self._job_path(integration.id),
            "description": f"Sync job for integration {integration.name} ({integration.label})",
            "schedule": schedule,
            "time_zone": "UTC",
            "http_target": {
                "uri": f"{service_url.rstrip('/')}/api/v1/integrations/{integration.id}/sync",
                "http_method": scheduler_v1.HttpMethod.POST,
                "headers": {
                    "Content-Type": "application/json"
                },
                "body": b'{"triggered_by": "scheduler"}',
                "oidc_token": {
                    "service_account_email": f"syncbridge-sa@{self.project_id}.iam.gserviceaccount.com"
                }
            }
        }

    def schedule_integration(self, integration: Integration, service_url: str) -> Optional[Dict[str, Any]]:
        """
        Create or replace the scheduler job for an integration.

        Args:
            integration: Integration whose sync_frequency drives the schedule
            service_url: Base URL of the trigger API

        Returns:
            Dictionary with scheduler job details, or None when the frequency
            is not schedulable (any existing job is removed)
        """
        schedule = cron_for_frequency(integration.sync_frequency)
        if schedule is None:
            logger.info(
                f"Integration {integration.id} uses {integration.sync_frequency.value} frequency; "
                f"no scheduler job needed"
            )
            self.delete_schedule(integration.id)
            return None

        try:
            job = self._build_job(integration, schedule, service_url)
            try:
                self.client.get_job(name=job["name"])
                response = self.client.update_job(job=job)
                logger.info(f"Updated scheduler job for {integration.id} with schedule: {schedule}")
            except NotFound:
                response = self.client.create_job(parent=self.parent, job=job)
                logger.info(f"Created scheduler job for {integration.id} with schedule: {schedule}")

            return {
                "job_name": f"sync-{integration.id}",
                "job_path": response.name,
                "schedule": schedule,
                "status": "ENABLED",
                "uri": job["http_target"]["uri"],
            }

        except Exception as e:
            logger.error(f"Failed to schedule integration {integration.id}: {e}")
            raise

    def schedule_all(self, integrations: List[Integration], service_url: str) -> Dict[str, Any]:
        """
        Apply the scheduler job of every given integration, typically all active ones.

        One integration failing to schedule does not stop the others.

        Returns:
            Dictionary with ``scheduled`` job details, ``unscheduled``
            integration ids and ``failed`` errors keyed by integration id
        """
        summary: Dict[str, Any] = {"scheduled": [], "unscheduled": [], "failed": {}}
        for integration in integrations:
            try:
                job = self.schedule_integration(integration, service_url)
            except Exception as e:
                summary["failed"][integration.id] = str(e)
                continue
            if job is None:
                summary["unscheduled"].append(integration.id)
            else:
                summary["scheduled"].append({"integration_id": integration.id, **job})

        logger.info(
            f"Scheduled {len(summary['scheduled'])} of {len(integrations)} integrations "
            f"({len(summary['failed'])} failed)"
        )
        return summary

    def delete_schedule(self, integration_id: str) -> bool:
        """
        Delete the scheduler job for an integration.

        Returns:
            True if deleted, False if not found
        """
        try:
            self.client.delete_job(name=self._job_path(integration_id))
            logger.info(f"Deleted scheduler job for integration {integration_id}")
            return True
        except NotFound:
            logger.warning(f"Scheduler job not found for integration {integration_id}")
            return False
        except Exception as e:
            logger.error(f"Failed to delete schedule for integration {integration_id}: {e}")
            raise

    def get_schedule(self, integration_id: str) -> Optional[Dict[str, Any]]:
        """
        Get scheduler job details for an integration, None if there is no job.
        """
        try:
            job = self.client.get_job(name=self._job_path(integration_id))
        except NotFound:
            return None
        except Exception as e:
            logger.error(f"Failed to get schedule for integration {integration_id}: {e}")
            raise
        return self._describe(job)

    def list_schedules(self) -> List[Dict[str, Any]]:
        """List all integration sync jobs in the configured location."""
        try:
            jobs = []
            for job in self.client.list_jobs(parent=self.parent):
                job_name = job.name.split("/")[-1]
                if job_name.startswith("sync-"):
                    jobs.append({"integration_id": job_name[len("sync-"):], **self._describe(job)})
            return jobs

        except Exception as e:
            logger.error(f"Failed to list schedules: {e}")
            raise

    def pause_schedule(self, integration_id: str) -> bool:
        """Pause an integration's job; False if it does not exist."""
        try:
            self.client.pause_job(name=self._job_path(integration_id))
            logger.info(f"Paused scheduler job for integration {integration_id}")
            return True
        except NotFound:
            return False
        except Exception as e:
            logger.error(f"Failed to pause schedule for integration {integration_id}: {e}")
            raise

    def resume_schedule(self, integration_id: str) -> bool:
        """Resume a paused job; False if it does not exist."""
        try:
            self.client.resume_job(name=self._job_path(integration_id))
            logger.info(f"Resumed scheduler job for integration {integration_id}")
            return True
        except NotFound:
            return False
        except Exception as e:
            logger.error(f"Failed to resume schedule for integration {integration_id}: {e}")
            raise

    @staticmethod
    def _describe(job) -> Dict[str, Any]:
        return {
            "job_name": job.name.split("/")[-1],
            "job_path": job.name,
            "schedule": job.schedule,
            "time_zone": job.time_zone,
            "status": job.state.name,
            "uri": job.http_target.uri if job.http_target else None,
            "description": job.description,
        }

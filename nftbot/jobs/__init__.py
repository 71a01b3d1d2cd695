"""Job bodies dispatched by the scheduler."""

from nftbot.jobs.shill_thread import ShillThreadJob
from nftbot.jobs.thank_you import ThankYouJob, mark_all_sales_processed

__all__ = ["ShillThreadJob", "ThankYouJob", "mark_all_sales_processed"]

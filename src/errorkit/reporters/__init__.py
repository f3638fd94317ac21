from errorkit.reporters.webhook import WebhookReporter

__all__ = ["WebhookReporter"]

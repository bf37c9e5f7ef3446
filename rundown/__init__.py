"""Weekly Rundown: Linear and GitHub activity reports delivered over Slack."""

"""PingCron: periodic HTTP ping scheduler."""

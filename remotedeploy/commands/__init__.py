"""remotedeploy CLI commands."""

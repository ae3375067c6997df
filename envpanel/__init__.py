"""Project environments panel: Jira versions joined to deployment environments."""

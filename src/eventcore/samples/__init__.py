"""Sample domains built on eventcore."""

"""Identity application layer: commands, queries, session store and the
public IdentityService facade."""

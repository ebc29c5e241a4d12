"""Single-user proxy for the Dexcom glucose API."""

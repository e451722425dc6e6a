"""The HTTP wallet service and everything needed to boot and stop it."""

"""Command-line app for scaler input tracking."""

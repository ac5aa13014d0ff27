"""Backend API for the music companion app."""

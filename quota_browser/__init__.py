"""Streamlit review app and file/export helpers for quota request exports."""

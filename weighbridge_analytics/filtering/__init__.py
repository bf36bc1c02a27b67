"""Record selection by calendar window and location facet."""

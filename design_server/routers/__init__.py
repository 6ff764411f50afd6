"""Route groups for the design preview server.

Registered in this order, ahead of the static mount:
- home: redirect from `/` to the standalone index page
- designs: SSI-expanded `.html` pages under the designs directory
"""

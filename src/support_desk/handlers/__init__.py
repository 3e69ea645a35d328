"""
AWS Lambda Handlers Module.

One module per API endpoint, each exposing ``lambda_handler(event, context)``:

- ticket_get: customer ticket lookup and listing
- ticket_admin_list: admin ticket listing with totals
- ticket_create, ticket_update: ticket writes
- ticket_messages, ticket_reply: conversation read and write
- ticket_notify: on-demand ticket emails
- equipment_save: customer equipment profiles

The handler modules are not imported here so that a function's cold start
only loads the code it needs.
"""

__version__ = "1.0.0"

from support_desk.handlers.utils.observability import logger, metrics, tracer

"""
Business Logic Layer Module.

The services here own the rules of the system and talk to persistence only
through the protocols in ``support_desk.dal``:

- TicketService: numbering, updates, replies and the status they imply
- EquipmentService: profile limits and sanitization
- Notifier / NotificationDispatcher: ticket emails, sent best-effort from writes
"""

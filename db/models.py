from tortoise.fields import BigIntField, CharField, DatetimeField, TextField
from tortoise.models import Model


class Ticket(Model):
    id = CharField(pk=True, max_length=32)
    ticket_number = BigIntField(unique=True)
    # free-form client input, unbounded
    name = TextField()
    urgency_type = TextField(null=True)
    service_type = TextField()
    status = CharField(max_length=16, default="waiting")
    created_at = DatetimeField()

    class Meta:
        table = "ticket"
        indexes = (("status", "created_at"),)


class TicketCounter(Model):
    name = CharField(pk=True, max_length=32)
    value = BigIntField()

    class Meta:
        table = "ticket_counter"

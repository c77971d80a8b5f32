from repository import RuleScope, SerializerValidator

from modules.orders.serializers import CreateOrderInputSerializer, UpdateOrderInputSerializer


class OrderValidator(SerializerValidator):
    def __init__(self) -> None:
        super().__init__(
            {
                RuleScope.CREATE: CreateOrderInputSerializer,
                RuleScope.UPDATE: UpdateOrderInputSerializer,
            }
        )

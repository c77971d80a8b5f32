from repository import SerializerPresenter

from modules.orders.serializers import OrderSerializer


class OrderPresenter(SerializerPresenter):
    serializer_class = OrderSerializer

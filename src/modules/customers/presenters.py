from repository import SerializerPresenter

from modules.customers.serializers import CustomerSerializer


class CustomerPresenter(SerializerPresenter):
    serializer_class = CustomerSerializer

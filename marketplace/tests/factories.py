import random
import uuid
from datetime import timedelta
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from django.utils import timezone
from faker import Faker

from marketplace.models import Cart, CartItem, Order, OrderItem, Product, Vendor, VendorOffer, VendorPayment

User = get_user_model()
fake = Faker()


def fake_address():
    return {
        "name": fake.name(),
        "street": fake.street_address(),
        "city": fake.city(),
        "state": fake.state(),
        "zip_code": fake.postcode(),
        "country": fake.country(),
        "phone": fake.numerify("+91##########"),
    }


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = User

    id = factory.LazyFunction(uuid.uuid4)
    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "defaultpassword")
    is_active = True
    role = "user"


class VendorUserFactory(UserFactory):
    role = "vendor"
    username = factory.Sequence(lambda n: f"vendor_{n}")
    email = factory.Sequence(lambda n: f"vendor_{n}@example.com")


class AdminFactory(UserFactory):
    role = "admin"
    is_superuser = True
    is_staff = True
    username = factory.Sequence(lambda n: f"admin_{n}")
    email = factory.Sequence(lambda n: f"admin_{n}@example.com")


class VendorFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Vendor

    user = factory.SubFactory(VendorUserFactory)
    business_name = factory.Faker("company")
    business_email = factory.LazyAttribute(lambda o: o.user.email)
    status = "approved"


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Product

    id = factory.LazyFunction(uuid.uuid4)
    name = factory.Sequence(lambda n: f"Product {n}")
    description = factory.Faker("paragraph", nb_sentences=3)
    brand = factory.Faker("company")
    images = factory.LazyAttribute(lambda o: [{"url": f"https://cdn.example.com/{o.id}.jpg", "alt": o.name}])
    is_active = True


class VendorOfferFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = VendorOffer

    product = factory.SubFactory(ProductFactory)
    vendor = factory.SubFactory(VendorFactory)
    price = factory.LazyFunction(lambda: Decimal(f"{random.randint(10, 500)}.00"))
    shipping_price = Decimal("0.00")
    stock = factory.Faker("random_int", min=10, max=100)
    sku = factory.Sequence(lambda n: f"SKU-{n:05d}")
    approval_status = "approved"
    is_active = True


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    order_number = factory.Sequence(lambda n: f"ORD-1700000000000-{1000 + n}")
    buyer = factory.SubFactory(UserFactory)
    status = "pending"
    payment_status = "pending"
    payment_method = "cod"
    total_amount = factory.LazyFunction(lambda: Decimal(f"{random.randint(50, 500)}.00"))
    shipping_price = Decimal("0.00")
    grand_total = factory.LazyAttribute(lambda o: o.total_amount + o.shipping_price)
    currency = "INR"
    shipping_address = factory.LazyFunction(fake_address)
    billing_address = factory.LazyAttribute(lambda o: dict(o.shipping_address))


class OrderItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    offer = factory.SubFactory(VendorOfferFactory)
    vendor = factory.LazyAttribute(lambda o: o.offer.vendor)
    quantity = factory.Faker("random_int", min=1, max=3)

    @factory.lazy_attribute
    def unit_price(self):
        return self.offer.price

    @factory.lazy_attribute
    def total_price(self):
        return self.unit_price * self.quantity

    unit_shipping_price = factory.LazyAttribute(lambda o: o.offer.shipping_price)
    product_name = factory.LazyAttribute(lambda o: o.offer.product.name)
    product_image = None
    stock_reserved = False


class VendorPaymentFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = VendorPayment

    vendor = factory.SubFactory(VendorFactory)
    amount = factory.LazyFunction(lambda: Decimal(f"{random.randint(100, 1000)}.00"))
    period_start = factory.LazyFunction(lambda: timezone.now() - timedelta(days=30))
    period_end = factory.LazyFunction(timezone.now)
    status = "pending"


class CartFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Cart

    user = factory.SubFactory(UserFactory)


class CartItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CartItem

    cart = factory.SubFactory(CartFactory)
    offer = factory.SubFactory(VendorOfferFactory)
    quantity = factory.Faker("random_int", min=1, max=5)

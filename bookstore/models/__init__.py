from bookstore.models.user import User
from bookstore.models.book import Book
from bookstore.models.address import Address
from bookstore.models.cart import Cart, CartItem
from bookstore.models.discount import Discount
from bookstore.models.order import Order
from bookstore.models.order_item import OrderItem
from bookstore.models.shipping import Shipping
from bookstore.models.payment import Payment
from bookstore.models.notifications import Notification

# add ALL models here

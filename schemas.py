"""
Database Schemas for Kerzenwelt by Dani

Each Pydantic model represents a MongoDB collection. The collection name is the lowercase of the class name.

- User -> "user"
- Product -> "product"
- CartItem -> "cartitem"
- Order -> "order", OrderItem -> "orderitem"
- ProductScent / ProductColor / ProductCollection -> join collections
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    username: str = Field(..., min_length=1, description="Login name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="Hashed password")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = Field(None, description="Phone number")
    is_admin: bool = Field(False, description="Back-office access")
    email_verified: bool = Field(False, description="Whether the email link was followed")
    discount_amount: float = Field(0, ge=0, description="Flat discount in EUR")
    discount_minimum_order: float = Field(0, ge=0, description="Subtotal needed for the discount")
    discount_expiry_date: Optional[datetime] = None


class VerificationToken(BaseModel):
    user_id: str
    token: str
    expires_at: datetime


class Session(BaseModel):
    token: str
    user_id: str
    expires_at: datetime


class Product(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., description="Product description")
    price: float = Field(..., ge=0, description="Price in EUR")
    image_url: Optional[str] = Field(None, description="Image URL")
    category_id: Optional[str] = None
    stock: int = Field(0, ge=0)
    scent: Optional[str] = None
    color: Optional[str] = None
    burn_time: Optional[str] = None
    featured: bool = False
    has_color_options: bool = True
    allow_multiple_colors: bool = False
    active: bool = Field(True, description="Visible to customers")
    dimensions: Optional[str] = None
    weight: Optional[str] = None
    materials: Optional[str] = None
    instructions: Optional[str] = None
    maintenance: Optional[str] = None


class Category(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None


class Scent(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    active: bool = True


class Color(BaseModel):
    name: str = Field(..., min_length=1)
    hex_value: str = Field(..., description="CSS hex value, e.g. #F5E6CC")
    active: bool = True


class Collection(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    image_url: Optional[str] = None
    featured_on_home: bool = False
    active: bool = True


class ProductScent(BaseModel):
    product_id: str
    scent_id: str


class ProductColor(BaseModel):
    product_id: str
    color_id: str


class ProductCollection(BaseModel):
    product_id: str
    collection_id: str


class CartItem(BaseModel):
    user_id: str
    product_id: str
    quantity: int = Field(1, ge=1)
    scent_id: Optional[str] = None
    color_id: Optional[str] = None
    color_name: Optional[str] = None
    color_ids: Optional[str] = Field(None, description="JSON list of color ids")
    has_multiple_colors: bool = False


class Order(BaseModel):
    number: int = Field(..., description="Human readable order number")
    user_id: str
    status: str = Field("pending", description="Order status")
    total: float
    subtotal: float
    discount_amount: float = 0
    shipping_cost: float = 0
    payment_method: str
    payment_status: str = "pending"
    customer_note: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None
    paypal_order_id: Optional[str] = None


class OrderItem(BaseModel):
    order_id: str
    product_id: str
    product_name: Optional[str] = None
    quantity: int
    price: float
    scent_id: Optional[str] = None
    scent_name: Optional[str] = None
    color_id: Optional[str] = None
    color_name: Optional[str] = None
    color_ids: Optional[str] = None
    has_multiple_colors: bool = False


class Review(BaseModel):
    user_id: str
    product_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class Invoice(BaseModel):
    invoice_number: str
    order_id: Optional[str] = None
    user_id: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    customer_postal_code: Optional[str] = None
    customer_country: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_note: Optional[str] = None
    payment_method: str = "cash"
    total: float
    subtotal: float
    tax: float = 0
    language: str = "hr"


class InvoiceItem(BaseModel):
    invoice_id: str
    product_id: str
    product_name: str
    quantity: int = Field(..., ge=1)
    price: float
    selected_scent: Optional[str] = None
    selected_color: Optional[str] = None


class Setting(BaseModel):
    key: str = Field(..., min_length=1)
    value: str


class Page(BaseModel):
    type: str = Field(..., description="about | contact | blog | ...")
    title: str
    content: str = Field(..., description="HTML body")


class CompanyDocument(BaseModel):
    name: str
    description: Optional[str] = None
    file_url: str
    file_type: str
    file_size: int
    uploaded_by: str


class PageVisit(BaseModel):
    path: str
    count: int = 0
    last_visited: Optional[datetime] = None


class Subscriber(BaseModel):
    email: EmailStr
    discount_code: str
    discount_used: bool = False
    language: str = "de"


# Typed views over the "setting" collection

class ShippingSettings(BaseModel):
    free_shipping_threshold: float = Field(50, ge=0)
    standard_shipping_rate: float = Field(5, ge=0)


class HeroSettings(BaseModel):
    title_text: Dict[str, str]
    subtitle_text: Dict[str, str]
    title_font_size: str = "4xl md:text-5xl lg:text-6xl"
    title_font_weight: str = "bold"
    title_color: str = "white"
    subtitle_font_size: str = "lg md:text-xl"
    subtitle_font_weight: str = "normal"
    subtitle_color: str = "white opacity-90"


class ContactSettings(BaseModel):
    address: str = ""
    city: str = ""
    postal_code: str = ""
    phone: str = ""
    email: str = ""
    working_hours: str = ""


class InstagramImage(BaseModel):
    id: Optional[str] = None
    media_url: str
    permalink: Optional[str] = None
    caption: Optional[str] = None


class SelectedColor(BaseModel):
    id: str
    name: Optional[str] = None
    hex_value: Optional[str] = None


LANGUAGES: List[str] = ["de", "hr", "en", "it", "sl"]

"""Launch menu and promo codes used to seed a fresh store."""
from __future__ import annotations

from decimal import Decimal
from typing import List

from .models import MenuItem, PromoCode, PromoType

# (name, description, price, category)
MENU: List[tuple] = [
    ("Classic Burger", "Juicy beef burger with lettuce and tomato", "8.99", "Burgers"),
    ("Cheese Burger", "Beef burger with melted cheddar cheese", "9.99", "Burgers"),
    ("Bacon Burger", "Beef with crispy bacon and BBQ sauce", "10.99", "Burgers"),
    ("Double Burger", "Two patties with all the toppings", "12.99", "Burgers"),
    ("Mushroom Swiss Burger", "Beef with mushrooms and swiss cheese", "11.49", "Burgers"),
    ("Margherita Pizza", "Fresh mozzarella, tomato, and basil", "12.99", "Pizzas"),
    ("Pepperoni Pizza", "Classic pepperoni with extra cheese", "13.99", "Pizzas"),
    ("Vegetarian Pizza", "Bell peppers, onions, mushrooms, olives", "12.49", "Pizzas"),
    ("Meat Lovers Pizza", "Pepperoni, sausage, ham, and bacon", "15.99", "Pizzas"),
    ("BBQ Chicken Pizza", "Grilled chicken, BBQ sauce, red onion", "14.49", "Pizzas"),
    ("Spaghetti Carbonara", "Classic Italian pasta with bacon and cream", "11.99", "Pasta"),
    ("Fettuccine Alfredo", "Creamy parmesan sauce over fettuccine", "10.99", "Pasta"),
    ("Penne Arrabbiata", "Spicy tomato sauce with garlic", "9.99", "Pasta"),
    ("Lasagna", "Layers of pasta, meat, and ricotta cheese", "12.99", "Pasta"),
    ("Ravioli Ricotta", "Cheese-filled ravioli with marinara sauce", "11.49", "Pasta"),
    ("Coke", "Ice cold Coca-Cola", "2.99", "Drinks"),
    ("Sprite", "Refreshing lemon-lime soda", "2.99", "Drinks"),
    ("Lemonade", "Fresh homemade lemonade", "3.49", "Drinks"),
    ("Iced Tea", "Cold brewed iced tea", "2.49", "Drinks"),
    ("Orange Juice", "Fresh squeezed orange juice", "3.99", "Drinks"),
    ("Chocolate Cake", "Rich chocolate cake with frosting", "5.99", "Desserts"),
    ("Vanilla Ice Cream", "Vanilla ice cream sundae with toppings", "4.99", "Desserts"),
    ("Cheesecake", "New York style cheesecake", "6.99", "Desserts"),
    ("Brownie", "Fudgy chocolate brownie", "3.99", "Desserts"),
    ("Tiramisu", "Classic Italian tiramisu", "5.49", "Desserts"),
    ("Caesar Salad", "Romaine, parmesan, croutons, caesar dressing", "9.99", "Salads"),
    ("Garden Salad", "Mixed greens, tomatoes, cucumbers, carrots", "8.99", "Salads"),
    ("Greek Salad", "Feta cheese, olives, tomatoes, onions", "10.49", "Salads"),
    ("Caprese Salad", "Mozzarella, tomatoes, basil, balsamic", "10.99", "Salads"),
]


def default_menu_items() -> List[MenuItem]:
    return [
        MenuItem(item_id=i, name=name, description=desc, price=Decimal(price), category=category)
        for i, (name, desc, price, category) in enumerate(MENU, start=1)
    ]


def default_promo_codes() -> List[PromoCode]:
    return [
        PromoCode(promo_id=1, code="12345678", description="Special discount code",
                  promo_type=PromoType.PERCENTAGE, discount_percent=Decimal("20"),
                  min_order_amount=Decimal("10"), max_discount=Decimal("50")),
        PromoCode(promo_id=2, code="PIZZA2FOR1", description="Buy 2 Large Pizzas, Get 1 Medium Free",
                  promo_type=PromoType.BUY2GET1, discount_amount=Decimal("12.99"),
                  min_order_amount=Decimal("30"), max_discount=Decimal("12.99")),
        PromoCode(promo_id=3, code="SAVE20", description="20% off your order",
                  promo_type=PromoType.PERCENTAGE, discount_percent=Decimal("20"),
                  min_order_amount=Decimal("25"), max_discount=Decimal("50")),
        PromoCode(promo_id=4, code="FIRSTORDER", description="$5 off your first order",
                  promo_type=PromoType.FIXED, discount_amount=Decimal("5"),
                  min_order_amount=Decimal("15"), max_discount=Decimal("5")),
        PromoCode(promo_id=5, code="FREESHIP", description="Free delivery",
                  promo_type=PromoType.DELIVERY, discount_amount=Decimal("3.99"),
                  min_order_amount=Decimal("0"), max_discount=Decimal("3.99")),
    ]

"""
Handlers package - modular bot handlers using aiogram Router

customer/cart/      - Shopper cart and checkout
  ├── add.py        - Product cards, add to cart, /start deep links
  ├── view.py       - Cart screen and quantity editing
  ├── checkout.py   - Payment selection, buyer form, confirmation, success
  ├── states.py     - Checkout form FSM states
  └── router.py     - Router wiring and `setup_dependencies`
"""

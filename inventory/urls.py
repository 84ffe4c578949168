"""
URL routing for inventory API endpoints.
"""
from django.urls import path
from . import views

app_name = 'inventory'

urlpatterns = [
    # Categories
    path('categories/', views.CategoryListCreateView.as_view(), name='category-list'),

    # Products
    path('products/', views.ProductListCreateView.as_view(), name='product-list'),
    path('products/autocomplete/', views.ProductAutocompleteView.as_view(), name='product-autocomplete'),
    path('products/<int:pk>/', views.ProductDetailView.as_view(), name='product-detail'),

    # Stock
    path('products/<int:pk>/stock/', views.StockIntakeView.as_view(), name='stock-intake'),
    path('products/<int:pk>/available-serials/', views.AvailableSerialsView.as_view(), name='available-serials'),
]

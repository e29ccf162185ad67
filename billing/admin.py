from django.contrib import admin
from .models import (
    Client, Employee, ExpenseCategory, Expense, CurrencySettings,
    RecurringInvoiceTemplate, Invoice, InvoiceItem, InvoiceMilestone,
    InvoiceActivity, ReminderSettings,
)


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ('amount',)


class InvoiceMilestoneInline(admin.TabularInline):
    model = InvoiceMilestone
    extra = 0


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'client', 'status', 'currency', 'total', 'amount_payable', 'due_date')
    list_filter = ('status', 'currency', 'engagement_type')
    search_fields = ('invoice_number', 'client__name')
    readonly_fields = ('subtotal', 'tax', 'gst_amount', 'tds_amount', 'total', 'amount_payable')
    inlines = [InvoiceItemInline, InvoiceMilestoneInline]

@admin.register(InvoiceActivity)
class InvoiceActivityAdmin(admin.ModelAdmin):
    list_display = ('invoice', 'action', 'user', 'timestamp')
    list_filter = ('action',)

@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ('name', 'company_name', 'email', 'currency', 'user')
    search_fields = ('name', 'company_name', 'email')

@admin.register(RecurringInvoiceTemplate)
class RecurringInvoiceTemplateAdmin(admin.ModelAdmin):
    list_display = ('title', 'client', 'frequency', 'next_issue_date', 'last_generated', 'status', 'auto_send')
    list_filter = ('status', 'frequency')
    search_fields = ('title', 'client__name')

@admin.register(ReminderSettings)
class ReminderSettingsAdmin(admin.ModelAdmin):
    list_display = ('user', 'enabled', 'days_before_due', 'days_after_due')

@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ('description', 'category', 'client', 'amount', 'currency', 'expense_date')
    list_filter = ('currency', 'category')
    search_fields = ('description',)

admin.site.register(Employee)
admin.site.register(ExpenseCategory)
admin.site.register(CurrencySettings)

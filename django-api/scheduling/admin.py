from django.contrib import admin

from scheduling.models import Occurrence, Series, SkipDate


class SkipDateInline(admin.TabularInline):
    model = SkipDate
    extra = 1


@admin.register(Series)
class SeriesAdmin(admin.ModelAdmin):
    list_display = ["name", "recurrence_rule", "start_date", "status", "version"]
    list_filter = ["status"]
    search_fields = ["name", "instructor_id", "location_id"]
    readonly_fields = ["version", "split_from"]
    inlines = [SkipDateInline]


@admin.register(Occurrence)
class OccurrenceAdmin(admin.ModelAdmin):
    list_display = ["series", "date", "start_time", "status", "is_exception"]
    list_filter = ["status", "is_exception", "series"]
    date_hierarchy = "date"
